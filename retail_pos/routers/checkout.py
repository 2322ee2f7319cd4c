from fastapi import APIRouter, Depends, status

from ..core.checkout import CheckoutService
from ..core.errors import CatalogError
from ..core.settlement import CartLine
from ..schemas.checkout import CheckoutRequest, CheckoutResponse
from .dependencies import get_checkout_service, http_error

router = APIRouter()


@router.post("/", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    payload: CheckoutRequest,
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Settle a cart against inventory.

    - Bundles decrement their components' stock, recipe products their ingredients.
    - 422 if the cart names unknown items (nothing is decremented).
    - 409 if some counters lacked stock; `detail` lists applied and failed targets.
    """
    cart = [CartLine(line.item_id, line.quantity) for line in payload.lines]
    try:
        result = await service.settle_checkout(cart, payment_method=payload.payment_method)
    except CatalogError as e:
        raise http_error(e)

    body = result.outcome.as_dict()
    return CheckoutResponse(
        success=body["success"],
        applied_targets=body["applied_targets"],
        failed_targets=body["failed_targets"],
        total_amount=result.total_amount,
        cost_amount=result.cost_amount,
        sale_id=result.sale_id,
    )
