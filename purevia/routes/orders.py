from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from purevia.deps import get_coordinator
from purevia.lifecycle import LifecycleCoordinator
from purevia.routes.schemas import PlaceOrderBody, SendOtpBody

router = APIRouter(tags=["orders"])


@router.post("/send-otp")
async def send_otp(
    body: SendOtpBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Mail an order-placement OTP. The code itself is never part of the response."""
    await coordinator.send_order_otp(body.email, body.name)
    return JSONResponse(status_code=200, content={"success": True})


@router.post("/order")
async def place_order(
    body: PlaceOrderBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.place_order(
        email=body.email,
        otp=body.otp,
        name=body.name,
        mobile=body.mobile,
        items=body.items,
        total_price=body.total_price,
        delivery=body.delivery,
        address=body.address,
        payment_method=body.payment_method,
    )
    return JSONResponse(status_code=200, content={"success": True})
