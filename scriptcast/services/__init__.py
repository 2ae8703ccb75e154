"""Services for script, audio and image generation."""

from .orchestrator import GenerationOrchestrator
from .progress import ProgressEmitter

__all__ = ["GenerationOrchestrator", "ProgressEmitter"]
