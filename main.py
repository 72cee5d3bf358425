"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the src package.
"""

from src.main import (
    ping,
    radiation_query,
    radnote_ingest,
)

__all__ = [
    "ping",
    "radiation_query",
    "radnote_ingest",
]
