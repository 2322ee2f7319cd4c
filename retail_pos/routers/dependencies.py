from fastapi import HTTPException, status

from ..core.checkout import CheckoutService
from ..core.errors import (
    CatalogError,
    CheckoutIntegrityError,
    ItemNotFoundError,
    PartialSettlementError,
)
from ..db.database import async_session_maker
from ..db.store import SqlCatalogStore


def get_catalog_store() -> SqlCatalogStore:
    return SqlCatalogStore(async_session_maker)


def get_checkout_service() -> CheckoutService:
    return CheckoutService(get_catalog_store())


def http_error(exc: CatalogError) -> HTTPException:
    """Map an engine fault onto the HTTP status the API reports."""
    if isinstance(exc, ItemNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, CheckoutIntegrityError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "unknown_item_ids": [str(i) for i in exc.unknown_item_ids]},
        )
    if isinstance(exc, PartialSettlementError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Insufficient stock", **exc.outcome.as_dict()},
        )
    # DataIntegrityError, CompositionInvariantError
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
