"""Course and table of contents API endpoints.

Provides the course list, the full table of contents, and per-course trees.
Responses carry the content revision as ETag.
"""

from aiohttp import web

from coursenav.app_keys import store_key
from coursenav.core.toc import build_toc


def create_toc_routes() -> list[web.RouteDef]:
    return [
        web.get("/api/courses", get_courses),
        web.get("/api/toc", get_toc),
        web.get("/api/toc/{course_id}", get_course_toc),
    ]


def revision_etag(revision: str) -> str:
    """Format a content revision as an HTTP entity tag."""
    return f'"{revision}"'


async def get_courses(request: web.Request) -> web.Response:
    store = request.app[store_key]
    return web.json_response({"items": [course.to_dict() for course in store.get_courses()]})


async def get_toc(request: web.Request) -> web.Response:
    snapshot = request.app[store_key].snapshot()
    etag = revision_etag(snapshot.revision)
    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    tree = build_toc(snapshot.pages, snapshot.course_order())
    return web.json_response(
        {"items": [node.to_dict() for node in tree]},
        headers={"ETag": etag},
    )


async def get_course_toc(request: web.Request) -> web.Response:
    course_id = request.match_info["course_id"]
    snapshot = request.app[store_key].snapshot()

    course = snapshot.course(course_id)
    if course is None:
        return web.json_response(
            {"error": "Course not found", "courseId": course_id},
            status=404,
        )

    etag = revision_etag(snapshot.revision)
    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    tree = build_toc(snapshot.pages_of(course_id))
    items = [node.to_dict() for node in tree]
    # A course without chapters has no pages to build a tree from
    return web.json_response(
        {
            "courseId": course_id,
            "title": course.title,
            "items": items[0].get("children", []) if items else [],
        },
        headers={"ETag": etag},
    )
