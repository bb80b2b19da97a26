import asyncio
import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from purevia.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

PAGES = {
    "/": "ss.html",
    "/cart": "cart.html",
    "/delivery": "delivery.html",
    "/cancel": "cancel.html",
}


async def _serve(filename: str) -> Response:
    path = Path(settings.static_dir) / filename
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        logger.error("Could not read page %s: %s", path, e)
        return PlainTextResponse("Error loading file", status_code=500)
    return HTMLResponse(content=data, status_code=200)


def _make_page_route(filename: str):
    async def page() -> Response:
        return await _serve(filename)
    return page


for _path, _filename in PAGES.items():
    router.add_api_route(_path, _make_page_route(_filename), methods=["GET"], include_in_schema=False)
