"""Import-path rewriting by literal substitution.

Only quoted paths inside recognised import statements are touched, so the
same path text appearing in a comment or a string elsewhere survives.  This
is not a parser; callers go through ``rewrite_known_import_patterns`` so the
strategy can be replaced without touching them.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import PurePosixPath

# import "./Foo.sol";
# import {Foo} from "./Foo.sol";   import * as Foo from "./Foo.sol";
_IMPORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"""(?P<head>\bimport\s+)(?P<quote>["'])(?P<path>[^"'\n]+)(?P=quote)"""),
    re.compile(r"""(?P<head>\bfrom\s+)(?P<quote>["'])(?P<path>[^"'\n]+)(?P=quote)"""),
)


def rewrite_known_import_patterns(text: str, old_prefix: str, new_prefix: str) -> str:
    """Replace *old_prefix* with *new_prefix* at the start of import paths."""
    if not old_prefix or old_prefix == new_prefix:
        return text

    def _substitute(match: re.Match[str]) -> str:
        path = match.group("path")
        if not path.startswith(old_prefix):
            return match.group(0)
        quote = match.group("quote")
        return f"{match.group('head')}{quote}{new_prefix}{path[len(old_prefix):]}{quote}"

    for pattern in _IMPORT_PATTERNS:
        text = pattern.sub(_substitute, text)
    return text


def relative_import(from_dir: PurePosixPath | str, target: PurePosixPath | str) -> str:
    """Relative import reference from a file in *from_dir* to *target*.

    Sibling and descendant targets get an explicit ``./`` prefix, which is
    how relative imports are written in the source units.
    """
    rel = posixpath.relpath(str(target), str(from_dir) or ".")
    return rel if rel.startswith("../") else f"./{rel}"
