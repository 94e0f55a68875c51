"""Meeting processing pipeline: transcript ingestion, AI analysis and streaming progress."""

__version__ = "0.1.0"
