from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from purevia.deps import get_coordinator
from purevia.lifecycle import LifecycleCoordinator
from purevia.routes.schemas import CustomerBody

router = APIRouter(tags=["admin"])


@router.post("/send-delivered-mail")
async def send_delivered_mail(
    body: CustomerBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Confirm and mark the customer's ledger row delivered, mailing them in between."""
    await coordinator.send_delivered_mail(body.email, body.name)
    return JSONResponse(status_code=200, content={"success": True})


@router.post("/send-review-mail")
async def send_review_mail(
    body: CustomerBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.send_review_mail(body.email, body.name)
    return JSONResponse(status_code=200, content={"success": True})


@router.post("/send-out-delivery-mail")
async def send_out_delivery_mail(
    body: CustomerBody,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    await coordinator.send_out_for_delivery_mail(body.email, body.name)
    return JSONResponse(status_code=200, content={"success": True})
