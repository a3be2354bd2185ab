"""Course ordering API endpoint.

Accepts module and chapter positions from the course editor, normalizes
them, and persists the canonical ordering. Clients send the ETag of the
table of contents they edited as If-Match; edits against a stale revision
are rejected with 412.
"""

import asyncio
import logging

from aiohttp import web

from coursenav.api.toc import revision_etag
from coursenav.app_keys import store_key
from coursenav.core.errors import (
    CourseNotFoundError,
    ForeignReferenceError,
    RevisionConflictError,
)
from coursenav.core.ordering import ChapterPosition, ModulePosition, apply_order
from coursenav.core.types import CourseId, ModuleId, PageId

logger = logging.getLogger(__name__)


def create_ordering_routes() -> list[web.RouteDef]:
    return [web.put("/api/courses/{course_id}/order", put_order)]


async def put_order(request: web.Request) -> web.Response:
    course_id = CourseId(request.match_info["course_id"])

    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "Invalid JSON body"}, status=400)

    try:
        module_order, chapter_order = parse_order_body(body)
    except ValueError as e:
        return web.json_response({"error": str(e)}, status=400)

    store = request.app[store_key]
    snapshot = store.snapshot()

    if snapshot.course(course_id) is None:
        return _course_not_found(course_id)

    if_match = request.headers.get("If-Match")
    if if_match is not None and if_match != revision_etag(snapshot.revision):
        return _revision_conflict(snapshot.revision)

    try:
        order = apply_order(
            snapshot.pages,
            course_id,
            module_order,
            chapter_order,
            modules=snapshot.modules_of(course_id),
        )
        updated = await asyncio.to_thread(
            store.persist_order, course_id, order, expected_revision=snapshot.revision
        )
    except CourseNotFoundError:
        # Course exists but has no modules: any reference is foreign
        if module_order or chapter_order:
            first = module_order[0].module_id if module_order else chapter_order[0].chapter_id
            return _foreign_reference(ForeignReferenceError("Entry", first, course_id))
        return web.json_response({"courseId": course_id, "modules": [], "chapters": []})
    except ForeignReferenceError as e:
        return _foreign_reference(e)
    except RevisionConflictError as e:
        return _revision_conflict(e.actual)
    except OSError as e:
        logger.error(f"Failed to persist order for course {course_id}: {e}")
        return web.json_response(
            {"error": "Failed to persist order", "courseId": course_id},
            status=503,
        )

    return web.json_response(
        order.to_dict(),
        headers={"ETag": revision_etag(updated.revision)},
    )


def parse_order_body(body: object) -> tuple[list[ModulePosition], list[ChapterPosition]]:
    """Parse an order request body.

    Args:
        body: Decoded JSON body

    Returns:
        Tuple of module positions and chapter positions

    Raises:
        ValueError: If the body does not have the expected shape
    """
    if not isinstance(body, dict):
        raise ValueError("Body must be an object")

    modules_raw = body.get("modules", [])
    if not isinstance(modules_raw, list):
        raise ValueError("modules must be a list")
    chapters_raw = body.get("chapters", [])
    if not isinstance(chapters_raw, list):
        raise ValueError("chapters must be a list")

    modules: list[ModulePosition] = []
    for i, item in enumerate(modules_raw):
        if not isinstance(item, dict):
            raise ValueError(f"modules[{i}] must be an object")
        modules.append(
            ModulePosition(
                module_id=ModuleId(_require_id(item, "id", f"modules[{i}]")),
                position=_require_position(item, f"modules[{i}]"),
            ),
        )

    chapters: list[ChapterPosition] = []
    for i, item in enumerate(chapters_raw):
        if not isinstance(item, dict):
            raise ValueError(f"chapters[{i}] must be an object")
        chapters.append(
            ChapterPosition(
                chapter_id=PageId(_require_id(item, "id", f"chapters[{i}]")),
                module_id=ModuleId(_require_id(item, "moduleId", f"chapters[{i}]")),
                position=_require_position(item, f"chapters[{i}]"),
            ),
        )

    return modules, chapters


def _require_id(item: dict[str, object], key: str, where: str) -> str:
    value = item.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{where}.{key} must be a non-empty string")
    return value


def _require_position(item: dict[str, object], where: str) -> int:
    value = item.get("position")
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where}.position must be an integer")
    return value


def _course_not_found(course_id: str) -> web.Response:
    return web.json_response(
        {"error": "Course not found", "courseId": course_id},
        status=404,
    )


def _foreign_reference(error: ForeignReferenceError) -> web.Response:
    return web.json_response(
        {
            "error": "Foreign reference",
            "kind": error.kind,
            "id": error.identifier,
            "courseId": error.course_id,
        },
        status=422,
    )


def _revision_conflict(revision: str) -> web.Response:
    return web.json_response(
        {"error": "Content changed", "revision": revision},
        status=412,
        headers={"ETag": revision_etag(revision)},
    )
