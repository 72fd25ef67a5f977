from __future__ import annotations

from typing import Protocol

from stockbook.entities import Identity, StateBundle

CLOUD_SCOPE_PREFIX = 'cloud-scope:'


def snapshot_key(identity: Identity) -> str:
    return f'{CLOUD_SCOPE_PREFIX}{identity.scope}'


class SnapshotBackend(Protocol):
    async def push(self, identity: Identity, bundle: StateBundle) -> StateBundle: ...

    async def pull(self, identity: Identity) -> StateBundle | None: ...
