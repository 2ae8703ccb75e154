"""Prompt template expansion for script and image generation."""

import logging
import re
from typing import Optional

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SECTION_HEADING = re.compile(r"^Section\s+\d+\s*\n?", re.IGNORECASE)


class PromptTemplates:
    """
    Expands the configured prompt templates.

    Script templates carry a ``[TOPIC]`` placeholder; image templates carry a
    ``[Replace Script]`` placeholder that receives the script text to illustrate.
    """

    TOPIC_PLACEHOLDER = "[TOPIC]"
    SCRIPT_PLACEHOLDER = "[Replace Script]"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        script_template: Optional[str] = None,
        image_template: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        self.script_template = script_template if script_template is not None else self.settings.script_prompt_template
        self.image_template = image_template if image_template is not None else self.settings.image_prompt_template

    def build_script_prompt(self, topic: str) -> str:
        """Expand the script template for a topic."""
        if not self.script_template.strip():
            raise ConfigurationError(
                message="Script prompt template is empty",
                missing_key="script_prompt_template",
            )
        if self.TOPIC_PLACEHOLDER not in self.script_template:
            logger.warning("Script template has no [TOPIC] placeholder; topic is ignored")
        return self.script_template.replace(self.TOPIC_PLACEHOLDER, topic.strip())

    def build_image_prompt(self, content: str) -> str:
        """Expand the image template with the script text to illustrate."""
        if not self.image_template.strip():
            raise ConfigurationError(
                message="Image prompt template is empty",
                missing_key="image_prompt_template",
            )
        return self.image_template.replace(self.SCRIPT_PLACEHOLDER, content.strip())

    @staticmethod
    def clean_section(content: str) -> str:
        """Drop a leading ``Section N`` heading from generated section text."""
        return SECTION_HEADING.sub("", content.strip(), count=1).strip()
