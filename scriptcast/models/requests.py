"""API request models."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ScriptRequest(BaseModel):
    """Request to generate a multi-section script."""

    topic: Optional[str] = Field(
        default=None,
        description="Topic substituted into the script prompt template",
    )
    prompt: Optional[str] = Field(
        default=None,
        description="Complete prompt; bypasses the template when given",
    )
    output_dir: Optional[str] = Field(
        default=None,
        description="Directory (relative to the storage root) for script.txt",
    )
    section_count: Optional[int] = Field(
        default=None,
        ge=1,
        le=100,
        description="Number of sections to request after the outline",
    )

    @model_validator(mode="after")
    def require_topic_or_prompt(self) -> "ScriptRequest":
        if not (self.topic and self.topic.strip()) and not (self.prompt and self.prompt.strip()):
            raise ValueError("Either 'topic' or 'prompt' must be provided")
        return self

    model_config = {"json_schema_extra": {
        "example": {
            "topic": "The history of the printing press",
            "output_dir": "printing-press",
        }
    }}


class AudioRequest(BaseModel):
    """Request to generate speech audio for a block of text."""

    content: str = Field(..., min_length=1, description="Text to narrate")
    section_index: int = Field(default=0, ge=0, description="Section number used in fragment names")
    output_dir: Optional[str] = Field(default=None, description="Directory for audio artifacts")


class ImageRequest(BaseModel):
    """Request to generate an image batch for a block of text."""

    content: str = Field(..., min_length=1, description="Section text to illustrate")
    section_index: int = Field(default=0, ge=0, description="Section number used in image names")
    output_dir: Optional[str] = Field(default=None, description="Directory for image artifacts")


class ProductionRequest(BaseModel):
    """Request to generate a script and then its audio and images."""

    topic: str = Field(..., min_length=1, description="Topic of the production")
    output_dir: Optional[str] = Field(default=None, description="Root directory for all artifacts")
