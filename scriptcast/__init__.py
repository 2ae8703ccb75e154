"""Generation orchestration for script, speech audio and image runs."""

__version__ = "1.0.0"
