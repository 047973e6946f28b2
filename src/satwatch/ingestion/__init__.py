"""Ingestion layer.

Adapters that receive upstream deliveries and emit normalized
:class:`~satwatch.state.events.InboundEvent` objects for the state store.
"""

from satwatch.ingestion.batch import IngestReport, ingest_batch
from satwatch.ingestion.normalize import normalize, normalize_batch

__all__ = ["IngestReport", "ingest_batch", "normalize", "normalize_batch"]
