from __future__ import annotations


class InventoryError(Exception):
    pass


class StoreUnavailable(InventoryError):
    """The structured store could not be opened; the session cannot continue without it."""


class ReadFailure(InventoryError):
    pass


class WriteFailure(InventoryError):
    pass


class ValidationFailure(InventoryError, ValueError):
    pass


class PartialSaleFailure(WriteFailure):
    def __init__(self, message: str, *, completed_steps: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.completed_steps = completed_steps
