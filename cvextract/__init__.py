"""cvextract: LLM-backed CV extraction with a retrying job lifecycle."""

__version__ = "0.1.0"
