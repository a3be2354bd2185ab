"""Search and landing page API endpoints."""

from aiohttp import web

from coursenav.api.pages import page_summary
from coursenav.app_keys import store_key
from coursenav.core.queries import quick_access_pages, recent_updates, search


def create_search_routes() -> list[web.RouteDef]:
    return [
        web.get("/api/search", get_search),
        web.get("/api/quick-access", get_quick_access),
        web.get("/api/recent", get_recent),
    ]


async def get_search(request: web.Request) -> web.Response:
    term = request.query.get("q", "")
    limit_raw = request.query.get("limit")

    limit: int | None = None
    if limit_raw is not None:
        try:
            limit = int(limit_raw)
        except ValueError:
            limit = -1
        if limit < 0:
            return web.json_response(
                {"error": "limit must be a non-negative integer", "limit": limit_raw},
                status=400,
            )

    results = search(request.app[store_key].get_pages(), term, max_results=limit)
    return web.json_response({"items": [result.to_dict() for result in results]})


async def get_quick_access(request: web.Request) -> web.Response:
    pages = quick_access_pages(request.app[store_key].get_pages())
    return web.json_response({"items": [page_summary(page) for page in pages]})


async def get_recent(request: web.Request) -> web.Response:
    pages = recent_updates(request.app[store_key].get_pages())
    return web.json_response({"items": [page_summary(page) for page in pages]})
