"""Prompt lookup with on-disk template overrides."""

import logging
from pathlib import Path

from doc_bot.models import MemberDescriptor, PromptConfig
from doc_bot.prompts.families import (
    DEFAULT_FAMILY,
    PROMPT_FAMILIES,
    PromptRenderer,
    fill_template,
    resolve_family,
)

logger = logging.getLogger(__name__)

WORKLOAD_DIRECTORY = "codedoc"


class PromptLibrary:
    """Renders member prompts for one model family.

    Lookup order for a member of kind ``method``:

    1. ``{directory}/codedoc/{family}/method.txt``
    2. ``{directory}/codedoc/default/method.txt``
    3. the built-in renderer for the family
    """

    def __init__(self, config: PromptConfig | None = None, model_name: str = "") -> None:
        self.config = config or PromptConfig()
        self.family = resolve_family(model_name)
        self.renderer: PromptRenderer = PROMPT_FAMILIES[self.family]
        self._templates: dict[str, str | None] = {}

    def render(self, member: MemberDescriptor) -> str:
        template = self._load_template(member.kind.value)
        if template is not None:
            return fill_template(template, member)
        return self.renderer(member)

    def _load_template(self, kind: str) -> str | None:
        if not self.config.enable_custom_prompts:
            return None
        if kind in self._templates:
            return self._templates[kind]

        template = None
        base = Path(self.config.directory) / WORKLOAD_DIRECTORY
        for family in dict.fromkeys((self.family, DEFAULT_FAMILY)):
            path = base / family / f"{kind}.txt"
            if not path.is_file():
                continue
            try:
                template = path.read_text(encoding="utf-8")
                logger.debug("Loaded prompt template from %s", path)
                break
            except OSError as e:
                logger.warning("Failed to read prompt template %s, falling back: %s", path, e)

        self._templates[kind] = template
        return template
