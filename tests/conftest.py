"""Shared pytest fixtures for the FHEVM Studio test suite.

Provides reusable fixtures for:
- A temporary examples repository (base template, source and test units,
  dependency files, a vendored library tree)
- A registry built from in-memory manifest rows
- A configuration rooted at the temporary repository
- A scaffolder wired to both
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any

import pytest

from fhevm_studio.config import StudioConfig
from fhevm_studio.registry.loader import Registry
from fhevm_studio.registry.models import (
    CategoryManifestEntry,
    DocManifestEntry,
    ExampleManifestEntry,
)
from fhevm_studio.scaffolder import Scaffolder


# ---------------------------------------------------------------------------
# Unit texts
# ---------------------------------------------------------------------------

COUNTER_SOURCE = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    import {FHE, euint32, externalEuint32} from "@fhevm/solidity/lib/FHE.sol";

    /// @title A simple FHE counter contract
    contract FHECounter {
        euint32 private _count;

        function getCount() external view returns (euint32) {
            return _count;
        }

        function increment(externalEuint32 inputEuint32, bytes calldata inputProof) external {
            euint32 encryptedEuint32 = FHE.fromExternal(inputEuint32, inputProof);
            _count = FHE.add(_count, encryptedEuint32);
            FHE.allowThis(_count);
            FHE.allow(_count, msg.sender);
        }
    }
""")

COUNTER_TEST = textwrap.dedent("""\
    import { FhevmType } from "@fhevm/hardhat-plugin";
    import { expect } from "chai";
    import { ethers, fhevm } from "hardhat";

    describe("FHECounter", function () {
      it("should increment the counter by 1", async function () {
        const input = await fhevm.createEncryptedInput(address, alice.address).add32(1).encrypt();
        const clear = await fhevm.userDecryptEuint(FhevmType.euint32, handle, address, alice);
        expect(clear).to.eq(1);
      });
    });
""")

ADD_SOURCE = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    import {FHE, euint8, externalEuint8} from "@fhevm/solidity/lib/FHE.sol";
    import {MathHelper} from "../../helpers/MathHelper.sol";

    /**
     * @title FHE Add
     * @notice Adds two encrypted values and keeps the sum encrypted on chain.
     * @dev This contract demonstrates:
     * - Converting external encrypted inputs with input proofs
     * - Adding two encrypted values with FHE.add
     * - Granting permissions with FHE.allowThis and FHE.allow
     */
    contract FHEAdd {
        euint8 private _a;
        euint8 private _b;
        euint8 private _result;

        function setA(externalEuint8 inputA, bytes calldata inputProof) external {
            _a = FHE.fromExternal(inputA, inputProof);
            FHE.allowThis(_a);
        }

        function setB(externalEuint8 inputB, bytes calldata inputProof) external {
            _b = FHE.fromExternal(inputB, inputProof);
            FHE.allowThis(_b);
        }

        function computeAPlusB() external {
            _result = FHE.add(_a, _b);
            FHE.allowThis(_result);
            FHE.allow(_result, msg.sender);
        }

        function result() public view returns (euint8) {
            return _result;
        }

        function _one() internal pure returns (uint8) {
            return MathHelper.one();
        }
    }
""")

ADD_TEST = textwrap.dedent("""\
    import { FhevmType } from "@fhevm/hardhat-plugin";
    import { expect } from "chai";
    import { ethers, fhevm } from "hardhat";

    describe("FHEAdd", function () {
      it("should add two encrypted values", async function () {
        const input = await fhevm.createEncryptedInput(address, alice.address).add8(3).encrypt();
        const clear = await fhevm.userDecryptEuint(FhevmType.euint8, handle, address, alice);
        expect(clear).to.eq(7);
      });

      it("should fail when the signer does not match", async function () {
        // The input proof is bound to alice, so bob cannot submit it
        await expect(contract.connect(bob).setA(handle, proof)).to.be.reverted;
      });
    });
""")

HELPER_SOURCE = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    library MathHelper {
        function one() internal pure returns (uint8) {
            return 1;
        }
    }
""")

TOKEN_SOURCE = textwrap.dedent("""\
    // SPDX-License-Identifier: MIT
    pragma solidity ^0.8.24;

    import {ERC7984} from "@openzeppelin/confidential-contracts/token/ERC7984.sol";

    contract ERC7984Example is ERC7984 {
        constructor() ERC7984("Token", "TKN", "") {}
    }
""")

TOKEN_TEST = textwrap.dedent("""\
    import { expect } from "chai";

    describe("ERC7984Example", function () {
      it("should deploy", async function () {
        expect(true).to.eq(true);
      });
    });
""")

HARDHAT_CONFIG = textwrap.dedent("""\
    import "@fhevm/hardhat-plugin";
    import "./tasks/accounts";
    import "./tasks/FHECounter";

    const config = {
      solidity: {
        version: "0.8.27",
        settings: {
          evmVersion: "cancun",
        },
      },
    };

    export default config;
""")

TASK_SCRIPT = textwrap.dedent("""\
    import { task } from "hardhat/config";

    task("task:address", "Prints the FHECounter address").setAction(async function (_args, hre) {
      const fheCounter = await hre.deployments.get("FHECounter");
      console.log("FHECounter address is " + fheCounter.address);
    });
""")

TEMPLATE_DESCRIPTOR: dict[str, Any] = {
    "name": "fhevm-hardhat-template",
    "version": "0.1.0",
    "description": "Hardhat template",
    "scripts": {"compile": "hardhat compile", "test": "hardhat test"},
    "devDependencies": {
        "@fhevm/hardhat-plugin": "^0.3.0",
        "@fhevm/mock-utils": "0.1.0",
        "@zama-fhe/relayer-sdk": "0.2.0",
        "hardhat": "^2.26.0",
    },
}


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Examples repository
# ---------------------------------------------------------------------------

@pytest.fixture
def examples_repo(tmp_path: Path) -> Path:
    """A miniature examples repository laid out like the real one."""
    root = tmp_path / "repo"

    template = root / "fhevm-hardhat-template"
    _write(template / "package.json", json.dumps(TEMPLATE_DESCRIPTOR, indent=2) + "\n")
    _write(template / "package-lock.json", "{}\n")
    _write(template / ".gitignore", "node_modules\n")
    _write(template / "hardhat.config.ts", HARDHAT_CONFIG)
    _write(template / "tasks" / "FHECounter.ts", TASK_SCRIPT)
    _write(template / "tasks" / "accounts.ts", "// accounts task\n")
    _write(template / "contracts" / "FHECounter.sol", "contract FHECounter {}\n")
    _write(template / "test" / "FHECounter.ts", "// placeholder test\n")
    _write(template / "deploy" / "deploy.ts", "// placeholder deploy\n")
    _write(template / "node_modules" / "hardhat" / "index.js", "module.exports = {};\n")
    _write(template / "artifacts" / "build-info.json", "{}\n")

    _write(root / "contracts" / "basic" / "FHECounter.sol", COUNTER_SOURCE)
    _write(root / "test" / "basic" / "FHECounter.ts", COUNTER_TEST)
    _write(root / "contracts" / "basic" / "fhe-operations" / "FHEAdd.sol", ADD_SOURCE)
    _write(root / "test" / "basic" / "fhe-operations" / "FHEAdd.ts", ADD_TEST)
    _write(root / "contracts" / "helpers" / "MathHelper.sol", HELPER_SOURCE)
    _write(root / "test" / "fixtures" / "values.json", '{"a": 3, "b": 4}\n')
    _write(root / "contracts" / "openzeppelin" / "ERC7984Example.sol", TOKEN_SOURCE)
    _write(root / "test" / "openzeppelin" / "ERC7984Example.ts", TOKEN_TEST)

    library = tmp_path / "openzeppelin-confidential-contracts" / "contracts"
    _write(library / "token" / "ERC7984.sol", "abstract contract ERC7984 {}\n")
    return root


@pytest.fixture
def studio_config(examples_repo: Path) -> StudioConfig:
    """Configuration rooted at the temporary examples repository."""
    return StudioConfig(root_dir=examples_repo)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

EXAMPLE_ROWS: list[dict[str, Any]] = [
    {
        "identifier": "fhe-counter",
        "source": "contracts/basic/FHECounter.sol",
        "test": "test/basic/FHECounter.ts",
        "description": "A simple FHE counter demonstrating basic encrypted operations",
        "category": "basic",
    },
    {
        "identifier": "fhe-add",
        "source": "contracts/basic/fhe-operations/FHEAdd.sol",
        "test": "test/basic/fhe-operations/FHEAdd.ts",
        "description": "Demonstrates FHE.add on encrypted values",
        "category": "basic",
        "dependencies": ["contracts/helpers/MathHelper.sol"],
        "fixture": "test/fixtures/values.json",
    },
    {
        "identifier": "erc7984-example",
        "source": "contracts/openzeppelin/ERC7984Example.sol",
        "test": "test/openzeppelin/ERC7984Example.ts",
        "description": "A confidential token",
        "category": "openzeppelin",
        "dependencies": ["@openzeppelin/confidential-contracts/token/ERC7984.sol"],
    },
]

CATEGORY_ROWS: list[dict[str, Any]] = [
    {
        "identifier": "basic",
        "name": "Basic FHEVM Examples",
        "description": "Fundamental FHEVM operations",
        "units": [
            {"source": "contracts/basic/FHECounter.sol", "test": "test/basic/FHECounter.ts"},
            {
                "source": "contracts/basic/fhe-operations/FHEAdd.sol",
                "test": "test/basic/fhe-operations/FHEAdd.ts",
                "dependencies": ["contracts/helpers/MathHelper.sol"],
                "fixture": "test/fixtures/values.json",
            },
        ],
        "extra_dependencies": {"@openzeppelin/contracts": "^5.0.0"},
    },
]

DOC_ROWS: list[dict[str, Any]] = [
    {
        "identifier": "fhe-counter",
        "title": "FHE Counter",
        "description": "This example demonstrates how to build a confidential counter using FHEVM.",
        "source": "contracts/basic/FHECounter.sol",
        "test": "test/basic/FHECounter.ts",
        "output": "docs/fhe-counter.md",
        "category_label": "Basic",
    },
    {
        "identifier": "fhe-add",
        "title": "FHE Add",
        "description": "This example demonstrates how to use FHE.add to add encrypted values.",
        "source": "contracts/basic/fhe-operations/FHEAdd.sol",
        "test": "test/basic/fhe-operations/FHEAdd.ts",
        "output": "docs/fhe-add.md",
        "category_label": "Basic - FHE Operations",
    },
]


def build_registry(
    examples: list[dict[str, Any]] | None = None,
    categories: list[dict[str, Any]] | None = None,
    docs: list[dict[str, Any]] | None = None,
) -> Registry:
    """Build a registry from manifest rows (defaults: the rows above)."""
    example_entries = [ExampleManifestEntry.model_validate(r) for r in (examples or EXAMPLE_ROWS)]
    category_entries = [
        CategoryManifestEntry.model_validate(r) for r in (categories or CATEGORY_ROWS)
    ]
    doc_entries = [DocManifestEntry.model_validate(r) for r in (docs or DOC_ROWS)]
    return Registry(
        examples={e.identifier: e for e in example_entries},
        categories={c.identifier: c for c in category_entries},
        docs={d.identifier: d for d in doc_entries},
    )


@pytest.fixture
def registry() -> Registry:
    """Registry over the miniature repository's units."""
    return build_registry()


@pytest.fixture
def scaffolder(studio_config: StudioConfig, registry: Registry) -> Scaffolder:
    return Scaffolder(studio_config, registry)


@pytest.fixture
def make_registry():
    """Factory for registries built from custom manifest rows."""
    return build_registry
