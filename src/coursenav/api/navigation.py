"""Navigation API endpoint.

Resolves previous/next links for a page within its course.
"""

from aiohttp import web

from coursenav.app_keys import store_key
from coursenav.core.errors import PageNotFoundError
from coursenav.core.navigation import resolve_navigation
from coursenav.core.types import PageId


def create_navigation_routes() -> list[web.RouteDef]:
    return [web.get("/api/navigation/{page_id}", get_navigation)]


async def get_navigation(request: web.Request) -> web.Response:
    page_id = request.match_info["page_id"]
    pages = request.app[store_key].get_pages()

    try:
        navigation = resolve_navigation(pages, PageId(page_id))
    except PageNotFoundError:
        return web.json_response(
            {"error": "Page not found", "pageId": page_id},
            status=404,
        )

    return web.json_response(navigation.to_dict())
