from .enrichment import enrich_and_store_thread_metadata

__all__ = [
    "enrich_and_store_thread_metadata",
]
