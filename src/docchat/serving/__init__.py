"""
Serving — FastAPI application for document upload and chat.

This module exposes the retrieval pipeline over HTTP so it can run as a
standalone container behind any ASGI server.
"""
