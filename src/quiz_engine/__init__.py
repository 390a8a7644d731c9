"""Quiz Shorts Engine - queued quiz video pipeline with an analytics feedback loop."""

__version__ = "0.1.0"
