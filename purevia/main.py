import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from purevia.config import settings
from purevia.deps import get_coordinator
from purevia.errors import PureviaError
from purevia.metrics import get_metrics_bytes, get_metrics_content_type, request_errors_total
from purevia.redis_client import close_redis
from purevia.routes import admin, cancellation, delivery, orders, pages

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_coordinator()
    logger.info("Order store at %s, OTP backend=%s", settings.orders_file, settings.otp_backend)
    yield
    await close_redis()


app = FastAPI(title="Purevia Orders", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(delivery.router)
app.include_router(cancellation.router)
app.include_router(admin.router)
app.include_router(pages.router)


def _failure(exc: Exception, msg: str) -> JSONResponse:
    request_errors_total.labels(error=type(exc).__name__).inc()
    return JSONResponse(status_code=400, content={"success": False, "msg": msg})


@app.exception_handler(PureviaError)
async def order_error_handler(request: Request, exc: PureviaError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return _failure(exc, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        msg = "Invalid JSON body"
    else:
        fields = sorted({
            str(err["loc"][1]) for err in errors if len(err.get("loc", ())) > 1 and err["loc"][0] == "body"
        })
        msg = "Missing or invalid field(s): " + ", ".join(fields) if fields else "Invalid request body"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, msg)
    return _failure(exc, msg)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # unknown paths and methods alike get a plain 404
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


@app.middleware("http")
async def unexpected_error_boundary(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.exception("%s %s failed", request.method, request.url.path)
        return _failure(e, str(e))


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: OTPs, orders placed, transitions, request errors."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
