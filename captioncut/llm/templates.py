"""
captioncut.llm.templates - Prompt template loading and rendering.

Uses Jinja2 to render prompt templates. A template in the workspace's
prompts/ directory overrides the packaged one of the same name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound

PACKAGE_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


class PromptTemplateManager:
    """Manages loading and rendering of prompt templates."""

    def __init__(self, prompts_dir: Path | None = None) -> None:
        self.search_path = [PACKAGE_PROMPTS_DIR]
        if prompts_dir is not None:
            self.search_path.insert(0, prompts_dir)
        self.env = Environment(
            loader=FileSystemLoader([str(p) for p in self.search_path]),
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._cache: dict[str, Template] = {}

    def get_template(self, name: str) -> Template:
        """Load a template by name.

        Raises:
            FileNotFoundError: If no directory on the search path has it
        """
        if name not in self._cache:
            try:
                self._cache[name] = self.env.get_template(name)
            except TemplateNotFound as e:
                raise FileNotFoundError(f"Template not found: {name}") from e
        return self._cache[name]

    def render(self, template_name: str, variables: dict[str, Any]) -> str:
        return self.get_template(template_name).render(**variables)

    def list_templates(self) -> list[str]:
        names = set()
        for directory in self.search_path:
            if directory.exists():
                names.update(f.name for f in directory.glob("*.txt"))
        return sorted(names)
