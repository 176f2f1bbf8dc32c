"""Ingestion layer.

This package contains the adapter that receives raw provider callbacks and
emits normalized events, plus the parsing helpers it relies on.
"""

__all__: list[str] = []
