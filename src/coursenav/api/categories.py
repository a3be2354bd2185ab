"""Category API endpoints."""

from aiohttp import web

from coursenav.api.pages import page_summary
from coursenav.app_keys import categories_key, store_key
from coursenav.core.categories import category_key, category_pages


def create_categories_routes() -> list[web.RouteDef]:
    return [
        web.get("/api/categories", get_categories),
        web.get("/api/categories/{name}", get_category_pages),
    ]


async def get_categories(request: web.Request) -> web.Response:
    snapshot = request.app[store_key].snapshot()
    categories = request.app[categories_key].get(snapshot.revision, lambda: snapshot.pages)
    return web.json_response({"items": [category.to_dict() for category in categories]})


async def get_category_pages(request: web.Request) -> web.Response:
    name = request.match_info["name"]
    snapshot = request.app[store_key].snapshot()
    categories = request.app[categories_key].get(snapshot.revision, lambda: snapshot.pages)

    key = category_key(name)
    category = next((c for c in categories if category_key(c.title) == key), None)
    if category is None:
        return web.json_response(
            {"error": "Category not found", "name": name},
            status=404,
        )

    pages = category_pages(snapshot.pages, category.title)
    return web.json_response(
        {
            "category": category.to_dict(),
            "items": [page_summary(page) for page in pages],
        },
    )
