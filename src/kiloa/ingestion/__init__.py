"""Ingestion layer.

Turns validated agent reports into node upserts and throttled history
samples.
"""

__all__: list[str] = []
