"""Ad-hoc command ingestion — the realtime feed consumer."""

from .bridge import IngestionBridge

__all__ = ["IngestionBridge"]
