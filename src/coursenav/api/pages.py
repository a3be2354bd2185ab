"""Pages API endpoint.

Returns page content with breadcrumbs and previous/next navigation.
Content is returned as stored; rendering happens in the client.
"""

from typing import Any

from aiohttp import web

from coursenav.app_keys import store_key
from coursenav.core.navigation import resolve_navigation
from coursenav.core.pages import Page


def create_pages_routes() -> list[web.RouteDef]:
    return [web.get("/api/pages/{page_id}", get_page)]


def page_summary(page: Page) -> dict[str, Any]:
    """Summarize a page for list responses."""
    return {
        "id": page.id,
        "title": page.title,
        "description": page.description,
        "courseId": page.course_id,
        "moduleId": page.module_id,
        "updatedAt": page.updated_at.isoformat() if page.updated_at else None,
    }


async def get_page(request: web.Request) -> web.Response:
    page_id = request.match_info["page_id"]
    snapshot = request.app[store_key].snapshot()

    page = snapshot.page(page_id)
    if page is None:
        return web.json_response(
            {"error": "Page not found", "pageId": page_id},
            status=404,
        )

    navigation = resolve_navigation(snapshot.pages, page.id)
    breadcrumbs = [
        {"kind": "course", "id": page.course_id, "title": page.course_title or page.course_id},
        {"kind": "module", "id": page.module_id, "title": page.module_title or page.module_id},
    ]

    response_data = {
        "meta": {
            **page_summary(page),
            "tags": list(page.tags),
            "metadata": dict(page.metadata),
        },
        "breadcrumbs": breadcrumbs,
        "navigation": navigation.to_dict(),
        "content": page.content,
    }
    return web.json_response(response_data)
