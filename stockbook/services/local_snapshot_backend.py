from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from stockbook.entities import Identity, StateBundle
from stockbook.errors import ValidationFailure
from stockbook.schemas import bundle_from_json, bundle_to_json
from stockbook.services.clock import now_ms
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.snapshot_provider import snapshot_key

logger = logging.getLogger(__name__)


def _require_scope(identity: Identity) -> None:
    if not identity.scope:
        raise ValidationFailure('An identity email is required for cloud backup')


class LocalSnapshotBackend:
    """Stands in for a remote backup target by writing bundles to the scalar store."""

    def __init__(self, scalar_store: ScalarStore, *, latency_seconds: float = 0.5, clock=now_ms) -> None:
        self.scalar_store = scalar_store
        self.latency_seconds = latency_seconds
        self.clock = clock

    async def push(self, identity: Identity, bundle: StateBundle) -> StateBundle:
        _require_scope(identity)
        stamped = replace(bundle, last_updated=self.clock())
        self.scalar_store.set_scalar(snapshot_key(identity), bundle_to_json(stamped))
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        return stamped

    async def pull(self, identity: Identity) -> StateBundle | None:
        _require_scope(identity)
        raw = self.scalar_store.get_scalar(snapshot_key(identity))
        if raw is None:
            return None
        try:
            return bundle_from_json(raw)
        except ValidationFailure:
            logger.exception('Stored snapshot for %s is unreadable', identity.scope)
            return None


class MemorySnapshotBackend:
    def __init__(self, *, clock=now_ms) -> None:
        self.clock = clock
        self.bundles: dict[str, StateBundle] = {}

    async def push(self, identity: Identity, bundle: StateBundle) -> StateBundle:
        _require_scope(identity)
        stamped = replace(bundle, last_updated=self.clock())
        self.bundles[snapshot_key(identity)] = stamped
        return stamped

    async def pull(self, identity: Identity) -> StateBundle | None:
        _require_scope(identity)
        return self.bundles.get(snapshot_key(identity))
