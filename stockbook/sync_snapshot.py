from __future__ import annotations

import argparse
import asyncio

from stockbook.config import Settings, settings
from stockbook.entities import Identity
from stockbook.services.inventory_coordinator import InventoryCoordinator
from stockbook.services.provider_factory import get_snapshot_backend
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.structured_store import StructuredStore


async def sync_snapshot(*, direction: str, email: str, cfg: Settings = settings) -> str:
    structured_store = StructuredStore(cfg.structured_store_url_normalized)
    scalar_store = ScalarStore(cfg.scalar_store_url_normalized, key_prefix=cfg.scalar_key_prefix)
    coordinator = InventoryCoordinator(
        structured_store=structured_store,
        scalar_store=scalar_store,
        snapshot_backend=get_snapshot_backend(cfg, scalar_store),
    )
    identity = Identity(email=email)
    try:
        await coordinator.initialize()
        if direction == 'push':
            pushed = await coordinator.push_snapshot(identity)
            return (
                f'Pushed backup for {identity.scope}: categories={len(pushed.categories)}, '
                f'products={len(pushed.products)}, sales={len(pushed.sales)}'
            )
        bundle = await coordinator.pull_snapshot(identity)
        if bundle is None:
            return f'No backup found for {identity.scope}'
        await coordinator.restore_full_state(bundle)
        return (
            f'Restored backup for {identity.scope}: categories={len(coordinator.categories)}, '
            f'products={len(coordinator.products)}, sales={len(coordinator.sales)}'
        )
    finally:
        await coordinator.close()
        await structured_store.close()
        scalar_store.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description='Push local data to, or restore it from, the cloud backup.')
    parser.add_argument('direction', choices=['push', 'pull'])
    parser.add_argument('email', help='Identity email the backup is scoped to.')
    parser.add_argument(
        '--yes',
        action='store_true',
        help='Confirm that pulling replaces all local categories, products and sales.',
    )
    args = parser.parse_args(argv)
    if args.direction == 'pull' and not args.yes:
        parser.error('pull replaces all local data; pass --yes to confirm')

    print(asyncio.run(sync_snapshot(direction=args.direction, email=args.email)))


if __name__ == '__main__':
    main()
