"""Maintenance of the cumulative documentation index (``SUMMARY.md``).

The index is a markdown file with a fixed header and one ``## <label>``
heading per category label, each followed by a block of linked list items.
Entries are keyed by their output file name: inserting a file name that is
already linked is a no-op.
"""

from __future__ import annotations

from pathlib import Path

SUMMARY_HEADER = "# FHEVM Examples Documentation\n\n"


def index_entry(title: str, filename: str) -> str:
    return f"- [{title}]({filename})"


def is_indexed(content: str, filename: str) -> bool:
    return f"]({filename})" in content


def insert_entry(content: str, title: str, filename: str, category_label: str) -> str:
    """Return *content* with the entry added under its category heading.

    An unknown heading is appended at the end together with the entry.  An
    existing heading gets the entry appended to the end of its block, which
    stops at the first blank line or the next heading.
    """
    if is_indexed(content, filename):
        return content

    entry = index_entry(title, filename)
    heading = f"## {category_label}"
    lines = content.split("\n")
    try:
        position = next(i for i, line in enumerate(lines) if line.strip() == heading)
    except StopIteration:
        return content.rstrip() + f"\n\n{heading}\n\n{entry}\n"

    cursor = position + 1
    while cursor < len(lines) and not lines[cursor].strip():
        cursor += 1
    if cursor >= len(lines) or lines[cursor].startswith("##"):
        # heading with an empty block
        lines[position + 1:cursor] = ["", entry, ""]
        return "\n".join(lines)
    while cursor < len(lines) and lines[cursor].strip() and not lines[cursor].startswith("##"):
        cursor += 1
    lines.insert(cursor, entry)
    return "\n".join(lines)


def update_index(index_path: Path, title: str, filename: str, category_label: str) -> bool:
    """Add one entry to the index file, creating it with the header if needed.

    Returns ``True`` when the file changed, ``False`` for a duplicate.
    """
    if not index_path.exists():
        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_text(SUMMARY_HEADER, encoding="utf-8")

    content = index_path.read_text(encoding="utf-8")
    updated = insert_entry(content, title, filename, category_label)
    if updated == content:
        return False
    index_path.write_text(updated, encoding="utf-8")
    return True


def reset_index(index_path: Path) -> None:
    """Truncate the index back to its header."""
    index_path.parent.mkdir(parents=True, exist_ok=True)
    index_path.write_text(SUMMARY_HEADER, encoding="utf-8")
