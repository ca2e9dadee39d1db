"""Replication engine: detection, schema repair, paged upserts and drift cleanup."""

from .cleaner import DriftCleaner
from .detector import ChangeDecision, ChangeDetector
from .replicator import BatchReplicator, ReplicationResult, page_count
from .schema_repair import SchemaRepairer

__all__ = [
    "BatchReplicator",
    "ChangeDecision",
    "ChangeDetector",
    "DriftCleaner",
    "ReplicationResult",
    "SchemaRepairer",
    "page_count",
]
