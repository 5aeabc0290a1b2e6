"""Jinja2 rendering of generated text artifacts.

Provides the TemplateRenderer class which loads the ``.j2`` templates shipped
in ``fhevm_studio/templates/`` (READMEs and deployment scripts) and renders
them with per-project context data.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

EXAMPLE_README = "example_readme.md.j2"
CATEGORY_README = "category_readme.md.j2"
DEPLOY_SINGLE = "deploy_single.ts.j2"
DEPLOY_MULTI = "deploy_multi.ts.j2"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the Jinja2 templates used for generated projects.

    Undefined variables raise instead of rendering as empty strings, so a
    missing context key shows up as an error rather than a broken script.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["camel_case"] = camel_case

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"deploy_single.ts.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(write_file, out, content)
        return out


# ---------------------------------------------------------------------------
# Jinja2 custom filter
# ---------------------------------------------------------------------------


def camel_case(value: str) -> str:
    """``FHECounter`` -> ``fHECounter``; ``fhe-counter`` -> ``fheCounter``.

    Identifiers that are already a single word keep their inner casing and
    only have the first character lowered, matching how task variables are
    named after their unit.
    """
    parts = [p for p in re.split(r"[-_\s]+", value) if p]
    if not parts:
        return ""
    head, *rest = parts
    joined = head + "".join(word[:1].upper() + word[1:] for word in rest)
    return joined[:1].lower() + joined[1:]


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str) -> None:
    """Create parent directories and write *content* as UTF-8."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
