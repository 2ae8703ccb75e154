"""Content models produced and consumed by the generation services."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import TurnRole


@dataclass
class ConversationTurn:
    """One turn of a multi-turn exchange with the remote service."""

    role: TurnRole
    content: str


@dataclass
class Section:
    """One numbered unit of script text (1..N)."""

    index: int
    content: str


@dataclass
class Chunk:
    """A bounded piece of text handed to a size-limited service."""

    index: int
    total_chunks: int
    content: str


@dataclass
class ScriptResult:
    """Result of a script sequencing run."""

    text: str
    outline: str
    sections: list[Section] = field(default_factory=list)
    turns: int = 0
    script_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "outline": self.outline,
            "sections": [{"index": s.index, "content": s.content} for s in self.sections],
            "turns": self.turns,
            "script_path": self.script_path,
        }


@dataclass
class AudioResult:
    """Result of an audio generation run."""

    output_path: str
    chunk_count: int
    fragment_count: int
    failed_chunks: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_path": self.output_path,
            "chunk_count": self.chunk_count,
            "fragment_count": self.fragment_count,
            "failed_chunks": list(self.failed_chunks),
        }


@dataclass
class GeneratedImage:
    """One persisted image artifact."""

    source_prompt_index: int
    variant_index: int
    path: str
    data: bytes = field(repr=False, default=b"")


@dataclass
class ImageBatchResult:
    """Result of an image batch run."""

    prompts: list[str]
    images: list[GeneratedImage] = field(default_factory=list)
    failed_prompts: list[int] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [image.path for image in self.images]

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompts": list(self.prompts),
            "images": [
                {
                    "source_prompt_index": image.source_prompt_index,
                    "variant_index": image.variant_index,
                    "path": image.path,
                }
                for image in self.images
            ],
            "failed_prompts": list(self.failed_prompts),
        }


@dataclass
class ProductionResult:
    """Result of a full script + audio + images production."""

    script: ScriptResult
    audio: Optional[AudioResult] = None
    images: dict[int, ImageBatchResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "script": self.script.to_dict(),
            "audio": self.audio.to_dict() if self.audio else None,
            "images": {str(index): batch.to_dict() for index, batch in self.images.items()},
            "errors": list(self.errors),
        }
