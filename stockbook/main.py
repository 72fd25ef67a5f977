import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockbook.config import Settings, settings
from stockbook.http_errors import install_error_handlers
from stockbook.routers import inventory
from stockbook.services.inventory_coordinator import InventoryCoordinator
from stockbook.services.provider_factory import get_snapshot_backend
from stockbook.services.scalar_store import ScalarStore
from stockbook.services.structured_store import StructuredStore

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    cfg = app_settings or settings
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        structured_store = StructuredStore(cfg.structured_store_url_normalized)
        scalar_store = ScalarStore(cfg.scalar_store_url_normalized, key_prefix=cfg.scalar_key_prefix)
        coordinator = InventoryCoordinator(
            structured_store=structured_store,
            scalar_store=scalar_store,
            snapshot_backend=get_snapshot_backend(cfg, scalar_store),
            autosync_delay=cfg.autosync_delay_seconds,
        )
        try:
            await coordinator.initialize()
            app.state.settings = cfg
            app.state.coordinator = coordinator
            yield
        finally:
            await coordinator.close()
            await structured_store.close()
            scalar_store.close()
            logger.info('Stores closed')

    app = FastAPI(title='Stockbook', lifespan=lifespan)
    install_error_handlers(app)
    app.include_router(inventory.router)
    return app


app = create_app()
