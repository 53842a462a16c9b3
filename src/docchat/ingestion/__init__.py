"""
Ingestion — document loading and embedding.

This module converts raw documents (PDF, plain text, Markdown) into
ordered text fragments and turns each fragment into a vector through the
embedding service.
"""
