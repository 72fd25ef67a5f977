from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from stockbook.errors import InventoryError, PartialSaleFailure, StoreUnavailable, ValidationFailure


def _status_for(exc: InventoryError) -> int:
    if isinstance(exc, ValidationFailure):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, StoreUnavailable):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
        detail: dict = {'message': str(exc), 'error': type(exc).__name__}
        if isinstance(exc, PartialSaleFailure):
            detail['completedSteps'] = list(exc.completed_steps)
        return JSONResponse(status_code=_status_for(exc), content={'detail': detail})
