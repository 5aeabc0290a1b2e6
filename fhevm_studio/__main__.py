"""Allow ``python -m fhevm_studio``."""

from fhevm_studio.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
