from __future__ import annotations

from stockbook.config import Settings
from stockbook.services.local_snapshot_backend import LocalSnapshotBackend, MemorySnapshotBackend
from stockbook.services.scalar_store import ScalarStore


def get_snapshot_backend(settings: Settings, scalar_store: ScalarStore):
    backend = settings.snapshot_backend.strip().lower()
    if backend == 'memory':
        return MemorySnapshotBackend()
    return LocalSnapshotBackend(scalar_store, latency_seconds=settings.snapshot_latency_seconds)
