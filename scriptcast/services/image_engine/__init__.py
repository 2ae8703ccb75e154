"""Image batch generation."""

from .image_generator import ImageBatchGenerator, image_filename, split_prompts

__all__ = ["ImageBatchGenerator", "image_filename", "split_prompts"]
