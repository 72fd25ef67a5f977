from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from stockbook.config import Settings
from stockbook.dependencies import get_coordinator, get_settings
from stockbook.schemas import (
    BundlePayload,
    CategoryPayload,
    IdentityPayload,
    NavigationPayload,
    ProductPayload,
    RestoreRequest,
    SalePayload,
    SaleRequest,
    ScanRequest,
    StatePayload,
    money_to_json,
)
from stockbook.services.export_service import export_bundle, export_filename, parse_import
from stockbook.services.inventory_coordinator import InventoryCoordinator

router = APIRouter(tags=['inventory'])


def _dump(model) -> dict:
    return model.model_dump(mode='json', by_alias=True)


def _state(coordinator: InventoryCoordinator) -> StatePayload:
    identity = coordinator.identity
    return StatePayload(
        loaded=coordinator.loaded,
        categories=[CategoryPayload.from_entity(item) for item in coordinator.categories],
        products=[ProductPayload.from_entity(item) for item in coordinator.products],
        sales=[SalePayload.from_entity(item) for item in coordinator.sales],
        earnings=coordinator.earnings,
        inventory_value=coordinator.total_inventory_value(),
        navigation=NavigationPayload.from_entity(coordinator.navigation),
        identity=IdentityPayload.from_entity(identity) if identity else None,
        last_synced_at=coordinator.last_synced_at,
    )


@router.get('/state')
async def get_state(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    return _dump(_state(coordinator))


@router.put('/categories')
async def save_category(
    payload: CategoryPayload,
    coordinator: InventoryCoordinator = Depends(get_coordinator),
) -> dict:
    category = await coordinator.upsert_category(payload.to_entity())
    return _dump(CategoryPayload.from_entity(category))


@router.put('/products')
async def save_product(
    payload: ProductPayload,
    coordinator: InventoryCoordinator = Depends(get_coordinator),
) -> dict:
    product = await coordinator.upsert_product(payload.to_entity())
    return _dump(ProductPayload.from_entity(product))


@router.delete('/products/{product_id}')
async def remove_product(product_id: str, coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    removed = await coordinator.delete_product(product_id)
    return {'removed': removed}


@router.get('/products')
async def list_products(
    category_id: str | None = Query(default=None, alias='categoryId'),
    q: str = '',
    order: str = 'asc',
    coordinator: InventoryCoordinator = Depends(get_coordinator),
) -> list[dict]:
    if order not in {'asc', 'desc'}:
        raise HTTPException(status_code=400, detail='order must be asc or desc')
    products = coordinator.filtered_products(category_id=category_id, query=q, descending=order == 'desc')
    return [_dump(ProductPayload.from_entity(product)) for product in products]


@router.get('/inventory/value')
async def inventory_value(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    return {
        'inventoryValue': money_to_json(coordinator.total_inventory_value()),
        'salesTotal': money_to_json(coordinator.sales_total()),
        'earnings': money_to_json(coordinator.earnings),
    }


@router.post('/sales')
async def record_sale(payload: SaleRequest, coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    sale = await coordinator.record_sale(payload.product_id, payload.quantity, payload.unit_price)
    return {
        'recorded': sale is not None,
        'sale': _dump(SalePayload.from_entity(sale)) if sale else None,
        'earnings': money_to_json(coordinator.earnings),
    }


@router.post('/restore')
async def restore(payload: RestoreRequest, coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    if not payload.confirm:
        raise HTTPException(status_code=400, detail='Restoring replaces all local data and must be confirmed')
    await coordinator.restore_full_state(payload.bundle.to_entity())
    return _dump(_state(coordinator))


@router.post('/import')
async def import_backup(
    request: Request,
    confirm: bool = False,
    coordinator: InventoryCoordinator = Depends(get_coordinator),
) -> dict:
    if not confirm:
        raise HTTPException(status_code=400, detail='Importing replaces all local data and must be confirmed')
    await coordinator.restore_full_state(parse_import(await request.body()))
    return _dump(_state(coordinator))


@router.post('/sync/push')
async def push_snapshot(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    pushed = await coordinator.push_snapshot()
    return {'lastUpdated': pushed.last_updated}


@router.post('/sync/pull')
async def pull_snapshot(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    bundle = await coordinator.pull_snapshot()
    if bundle is None:
        raise HTTPException(status_code=404, detail='No cloud backup found')
    return _dump(BundlePayload.from_entity(bundle))


@router.post('/earnings/reset')
async def reset_earnings(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    await coordinator.reset_earnings()
    return {'earnings': money_to_json(coordinator.earnings), 'sales': len(coordinator.sales)}


@router.post('/earnings/reconcile')
async def reconcile_earnings(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    total = await coordinator.reconcile_earnings()
    return {'earnings': money_to_json(total)}


@router.post('/session')
async def sign_in(payload: IdentityPayload, coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    backup = await coordinator.sign_in(payload.to_entity())
    return {
        'identity': _dump(payload),
        'cloudBackup': _dump(BundlePayload.from_entity(backup)) if backup else None,
    }


@router.delete('/session')
async def sign_out(coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    coordinator.sign_out()
    return {'identity': None}


@router.put('/navigation')
async def save_navigation(
    payload: NavigationPayload,
    coordinator: InventoryCoordinator = Depends(get_coordinator),
) -> dict:
    coordinator.set_navigation(payload.to_entity())
    return _dump(NavigationPayload.from_entity(coordinator.navigation))


@router.post('/scan')
async def scan(payload: ScanRequest, coordinator: InventoryCoordinator = Depends(get_coordinator)) -> dict:
    navigation = coordinator.apply_scan(payload.code)
    return _dump(NavigationPayload.from_entity(navigation))


@router.get('/export')
async def export(
    coordinator: InventoryCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_settings),
) -> Response:
    filename = export_filename(prefix=settings.export_filename_prefix)
    return Response(
        content=export_bundle(coordinator.snapshot()),
        media_type='application/json',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )
