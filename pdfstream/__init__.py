"""PDF content streams, stream filters, font encodings and raw file access."""

__version__ = "0.1.0"
__all__ = ["backend", "content", "encoding", "errors", "filters", "ops"]