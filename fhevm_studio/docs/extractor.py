"""Pattern-based extraction of documentation facts from source and test units.

Each extractor is an independent regex matcher returning an optional result.
A non-match is an absent feature, never an error.  The source language's
grammar is not parsed: only NatSpec-style comment tags, bullet blocks and a
handful of declaration shapes are recognised.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from fhevm_studio.docs.classifier import describe_code


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_TITLE_TAG = re.compile(r"@title\s+(.+?)\s*$", re.MULTILINE)
_NOTICE_TAG = re.compile(r"@notice\s+(.+?)\s*$", re.MULTILINE)
_DEV_TAG = re.compile(r"@dev\s+(.+?)\s*$", re.MULTILINE)

_DEMONSTRATES_HEADER = re.compile(
    r"@dev\s+This\s+(?:contract\s+)?(?:demonstrates|shows):", re.IGNORECASE
)
_KEY_CONCEPTS_HEADER = re.compile(r"@dev\s+Key\s+Concepts:", re.IGNORECASE)
_EDUCATIONAL_HEADER = re.compile(r"@dev\s+Educational\s+Notes:", re.IGNORECASE)
_BLOCK_HEADERS = (_DEMONSTRATES_HEADER, _KEY_CONCEPTS_HEADER, _EDUCATIONAL_HEADER)

_COMMENT_LINE = re.compile(r"^\s*(?:///|/\*\*|\*/|\*|//)")
_COMMENT_PREFIX = re.compile(r"^\s*(?:///|/\*\*|\*/|\*(?!/)|//)\s?")
_BULLET = re.compile(r"^\s*[-•]\s*(.+)$")
_TAG_START = re.compile(r"^@(?:dev|notice|param|return|title|author|inheritdoc)\b")
_CODE_START = re.compile(r"^[{}();]")

_CHAPTER_PATTERNS = (
    re.compile(r"@chapter\s+([\w-]+)", re.IGNORECASE),
    re.compile(r"chapter:\s*([\w-]+)", re.IGNORECASE),
    re.compile(r"""chapter\s*=\s*["']?([\w-]+)["']?""", re.IGNORECASE),
)

_FUNCTION = re.compile(r"\bfunction\s+(\w+)\s*\([^)]*\)([^{;]*)")
_HIDDEN_VISIBILITY = re.compile(r"\b(?:internal|private)\b")

_TEST_CASE = re.compile(
    r"""\bit\(\s*(?P<quote>["'`])(?P<title>.+?)(?P=quote)[\s\S]*?\{(?P<body>[\s\S]*?)(?=\n\s*(?:it\(|describe\(|\}))"""
)
_DESCRIBE = re.compile(r"""\bdescribe\(\s*(?P<quote>["'`])(?P<title>.+?)(?P=quote)""")
_FAILURE_KEYWORDS = ("fail", "pitfall", "wrong", "error", "should not")
_FAILURE_GROUP = re.compile(r"pitfall|error|fail", re.IGNORECASE)
_BODY_COMMENT = re.compile(r"//\s*(.+?)\s*$", re.MULTILINE)

_FIRST_BLOCK_COMMENT = re.compile(r"/\*\*\s*\n\s*\*\s*(.+?)\s*\n")


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

class Concept(BaseModel):
    """A ``Name: description`` pair from a Key Concepts block."""

    title: str
    description: str


class FailureCase(BaseModel):
    """A failure-named test case and its human-readable cause."""

    title: str
    cause: str


class SourceFacts(BaseModel):
    """Everything mined from the comments and declarations of a source unit."""

    title: str | None = None
    notice: str | None = None
    dev: str | None = None
    demonstrates: list[str] = Field(
        default_factory=list, description="Bullets of the 'This contract demonstrates' block"
    )
    key_concepts: list[Concept] = Field(default_factory=list)
    educational_notes: list[str] = Field(default_factory=list)
    functions: list[str] = Field(
        default_factory=list, description="Externally-callable functions in declaration order"
    )


# ---------------------------------------------------------------------------
# Comment helpers
# ---------------------------------------------------------------------------

def _clean(line: str) -> str:
    """Strip the comment marker and a leading bullet from one line."""
    text = _COMMENT_PREFIX.sub("", line, count=1).strip()
    bullet = _BULLET.match(text)
    return bullet.group(1).strip() if bullet else text


def _block_lines(text: str, header: re.Pattern[str]) -> list[tuple[str, bool]]:
    """Comment lines of the block introduced by *header*.

    Returns ``(cleaned_text, is_bullet)`` pairs.  The block ends at the first
    line that is not a comment or that starts another tag.
    """
    match = header.search(text)
    if match is None:
        return []

    lines: list[tuple[str, bool]] = []
    line_end = text.find("\n", match.end())
    trailing = text[match.end(): line_end if line_end != -1 else len(text)].strip()
    if trailing:
        lines.append((trailing, False))
    if line_end == -1:
        return lines

    for raw in text[line_end + 1:].splitlines():
        if not _COMMENT_LINE.match(raw):
            break
        body = _COMMENT_PREFIX.sub("", raw, count=1).strip()
        if _TAG_START.match(body) or any(h.search(body) for h in _BLOCK_HEADERS):
            break
        if not body:
            continue
        bullet = _BULLET.match(body)
        lines.append((bullet.group(1).strip() if bullet else body, bullet is not None))
    return lines


def _bullets(text: str, header: re.Pattern[str]) -> list[str]:
    return [line for line, is_bullet in _block_lines(text, header) if is_bullet]


def _first_tag(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1).strip() if match else None


# ---------------------------------------------------------------------------
# Source-unit extraction
# ---------------------------------------------------------------------------

def parse_concept(item: str) -> Concept | None:
    """Split one Key Concepts bullet into a title and a description.

    ``Name: description`` is preferred; without a colon the first word is the
    title.  Bullets too short to carry a description are dropped.
    """
    if len(item) <= 15:
        return None
    title, colon, description = item.partition(":")
    if colon and title.strip():
        title, description = title.strip(), description.strip()
        if len(title) > 3 and len(description) > 10:
            return Concept(title=title, description=description)
        return None
    words = item.split()
    if len(words) > 2:
        return Concept(title=words[0], description=" ".join(words[1:]))
    return Concept(title=item, description=item)


def extract_functions(source_text: str) -> list[str]:
    """Public and external function names, first declaration order, no repeats."""
    names: list[str] = []
    for match in _FUNCTION.finditer(source_text):
        name, modifiers = match.group(1), match.group(2)
        if name.startswith("_") or _HIDDEN_VISIBILITY.search(modifiers):
            continue
        if name not in names:
            names.append(name)
    return names


def extract_source_facts(source_text: str) -> SourceFacts:
    concepts = [
        concept
        for concept in (parse_concept(item) for item in _bullets(source_text, _KEY_CONCEPTS_HEADER))
        if concept is not None
    ]
    return SourceFacts(
        title=_first_tag(_TITLE_TAG, source_text),
        notice=_first_tag(_NOTICE_TAG, source_text),
        dev=_first_tag(_DEV_TAG, source_text),
        demonstrates=_bullets(source_text, _DEMONSTRATES_HEADER),
        key_concepts=concepts,
        educational_notes=_bullets(source_text, _EDUCATIONAL_HEADER),
        functions=extract_functions(source_text),
    )


def _usable(line: str, minimum: int) -> bool:
    return len(line) > minimum and not _TAG_START.match(line) and not _CODE_START.match(line)


def extract_description(source_text: str) -> str:
    """Assemble the richest description the source unit's comments allow.

    Combines, in order: a substantial ``@notice``; the demonstrates block
    rewritten as one sentence; the first meaningful key concept; the first
    educational note; and a code-derived sentence when it adds something new.
    Overlapping parts are skipped.  Falls back to the first line of the first
    block comment, or an empty string.
    """
    parts: list[str] = []

    notice = _first_tag(_NOTICE_TAG, source_text)
    if notice and len(notice) > 30:
        parts.append(notice)

    demo = [
        line
        for line, _ in _block_lines(source_text, _DEMONSTRATES_HEADER)
        if _usable(line, 5)
    ][:5]
    demo = [line for line in demo if len(line) > 10]
    if demo:
        demo_text = ", ".join(line[:1].lower() + line[1:] for line in demo)
        if len(demo_text) > 20:
            parts.append(f"This example shows how to {demo_text}.")

    concept_lines = [
        line for line, _ in _block_lines(source_text, _KEY_CONCEPTS_HEADER) if _usable(line, 20)
    ]
    if concept_lines:
        first = next(
            (
                line
                for line in concept_lines
                if len(line) > 30 and (":" in line or re.search(r"[a-z]{3,}", line))
            ),
            concept_lines[0],
        )
        if len(first) > 30:
            parts.append(first)

    notes = [
        line for line, _ in _block_lines(source_text, _EDUCATIONAL_HEADER) if _usable(line, 30)
    ]
    if notes:
        parts.append(notes[0])

    analysis = describe_code(source_text)
    if analysis:
        if parts:
            joined = " ".join(parts).lower()
            lowered = analysis.lower()
            if lowered[:30] not in joined and joined[:30] not in lowered:
                parts.append(analysis)
        else:
            parts.append(analysis)

    if not parts:
        fallback = _FIRST_BLOCK_COMMENT.search(source_text)
        return fallback.group(1).strip() if fallback else ""

    return _join_parts(parts)


def _join_parts(parts: list[str]) -> str:
    description = re.sub(r"\s+", " ", parts[0]).strip()
    for part in parts[1:]:
        part = part.strip()
        current, candidate = description.lower(), part.lower()
        if current[:40] in candidate or candidate[:40] in current:
            continue
        if "how to" in current and candidate.startswith("how to"):
            part = re.sub(r"^how to\s+", "", part, flags=re.IGNORECASE)
        if " to " in current and part.lower().startswith("to "):
            part = re.sub(r"^to\s+", "", part, flags=re.IGNORECASE)
        description = _terminate(description) + " " + part
    return _terminate(tidy_sentence(description))


def tidy_sentence(text: str) -> str:
    """Collapse whitespace and doubled punctuation left by concatenation."""
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\s*\.\s*\.", ".", text)
    text = re.sub(r"\s*,\s*,", ",", text)
    text = re.sub(r"\s+how to how to", " how to", text, flags=re.IGNORECASE)
    text = re.sub(r"\s+to to\s+", " to ", text, flags=re.IGNORECASE)
    return text.strip()


def _terminate(text: str) -> str:
    return text if text.endswith((".", "!", "?")) else text + "."


# ---------------------------------------------------------------------------
# Test-unit extraction
# ---------------------------------------------------------------------------

def extract_chapter(test_text: str) -> str | None:
    """Organisational chapter tag (``@chapter x``, ``chapter: x``, ``chapter = "x"``)."""
    for pattern in _CHAPTER_PATTERNS:
        match = pattern.search(test_text)
        if match:
            return match.group(1).lower()
    return None


def _enclosing_group(test_text: str, position: int) -> str:
    title = ""
    for match in _DESCRIBE.finditer(test_text, 0, position):
        title = match.group("title")
    return title


def extract_failure_cases(test_text: str) -> list[FailureCase]:
    """Failure-named test cases, in file order, one per distinct title.

    A case counts when its own title contains a failure keyword or when it is
    declared inside a ``describe`` group named after pitfalls, errors or
    failures.  The cause is the first ``//`` comment of the case body, falling
    back to the title.
    """
    cases: list[FailureCase] = []
    seen: set[str] = set()
    for match in _TEST_CASE.finditer(test_text):
        title, body = match.group("title"), match.group("body")
        lowered = title.lower()
        named_failure = any(keyword in lowered for keyword in _FAILURE_KEYWORDS)
        if not named_failure and not _FAILURE_GROUP.search(_enclosing_group(test_text, match.start())):
            continue
        if title in seen:
            continue
        seen.add(title)
        comment = _BODY_COMMENT.search(body)
        cases.append(FailureCase(title=title, cause=comment.group(1) if comment else title))
    return cases
