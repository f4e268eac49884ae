"""Embedding cache and semantic similarity search for markdown vaults."""

__version__ = "0.1.0"
