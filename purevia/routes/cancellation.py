from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from purevia.deps import get_coordinator
from purevia.lifecycle import LifecycleCoordinator
from purevia.routes.schemas import DeleteOrderBody, EmailBody, VerifyCancelBody
from purevia.store import dump_order

router = APIRouter(tags=["cancellation"])


@router.post("/send-cancel-otp")
async def send_cancel_otp(
    body: EmailBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.send_cancel_otp(body.email)
    return JSONResponse(status_code=200, content={"success": True})


@router.post("/verify-cancel-otp")
async def verify_cancel_otp(
    body: VerifyCancelBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """
    Returns the customer's ACTIVE, undelivered orders newest first. /delete-order takes an
    index into this list.
    """
    orders = await coordinator.verify_cancel(body.email, body.otp)
    return JSONResponse(
        status_code=200,
        content={"success": True, "orders": [dump_order(o) for o in orders]},
    )


@router.post("/delete-order")
async def delete_order(
    body: DeleteOrderBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.cancel_order(body.email, body.index, order_id=body.order_id)
    return JSONResponse(status_code=200, content={"success": True})
