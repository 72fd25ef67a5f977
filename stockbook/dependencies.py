from fastapi import Request

from stockbook.config import Settings
from stockbook.services.inventory_coordinator import InventoryCoordinator


def get_coordinator(request: Request) -> InventoryCoordinator:
    return request.app.state.coordinator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
