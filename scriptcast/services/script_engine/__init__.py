"""Script generation engine."""

from .prompt_templates import PromptTemplates
from .script_sequencer import ScriptSequencer
from .text_chunker import chunk_text, split_text

__all__ = ["PromptTemplates", "ScriptSequencer", "chunk_text", "split_text"]
