from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from purevia.deps import get_coordinator
from purevia.lifecycle import LifecycleCoordinator
from purevia.routes.schemas import CustomerBody, VerifyDeliveryBody

router = APIRouter(tags=["delivery"])


@router.post("/send-delivery-otp")
async def send_delivery_otp(
    body: CustomerBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.send_delivery_otp(body.email, body.name)
    return JSONResponse(status_code=200, content={"success": True})


@router.post("/verify-delivery-otp")
async def verify_delivery_otp(
    body: VerifyDeliveryBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Delivery person enters the customer's OTP; the newest pending order becomes DELIVERED."""
    await coordinator.confirm_delivery(body.email, body.otp, body.name)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "Delivery confirmed successfully"},
    )


@router.post("/notify-delivery-start")
async def notify_delivery_start(
    body: CustomerBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.notify_delivery_start(body.email, body.name)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "Admin notified & delivery OTP sent"},
    )
