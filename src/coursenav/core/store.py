"""JSON content index store.

Index structure:
    {
      "courses": [
        {"id": "python", "title": "Python", "order": 1,
         "modules": [
           {"id": "basics", "title": "Basics", "order": 1,
            "chapters": [
              {"id": "intro", "title": "Intro", "order": 1, "content": "...",
               "description": "...", "tags": ["start"],
               "metadata": {"category": "FAQ", "readTimeMinutes": "5"},
               "updatedAt": "2025-01-31T10:00:00+00:00"}
            ]}
         ]}
      ]
    }

Reads go through immutable snapshots so one request always sees a
consistent view. Writes replace the file atomically and are serialized.
"""

import hashlib
import json
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from coursenav.core.errors import (
    ContentIndexError,
    CourseNotFoundError,
    ForeignReferenceError,
    RevisionConflictError,
)
from coursenav.core.ordering import CanonicalOrder
from coursenav.core.pages import Course, Module, Page
from coursenav.core.types import CourseId, ModuleId, PageId

logger = logging.getLogger(__name__)


def compute_revision(raw: bytes) -> str:
    """Compute revision tag of index file contents.

    Args:
        raw: File contents

    Returns:
        First 16 hex chars of the SHA-256 digest
    """
    return hashlib.sha256(raw).hexdigest()[:16]


@dataclass(frozen=True)
class ContentSnapshot:
    """Consistent view of the content index at one revision."""

    courses: tuple[Course, ...]
    modules: tuple[Module, ...]
    pages: tuple[Page, ...]
    revision: str

    def course(self, course_id: str) -> Course | None:
        """Get course by id."""
        return next((c for c in self.courses if c.id == course_id), None)

    def page(self, page_id: str) -> Page | None:
        """Get page by id."""
        return next((p for p in self.pages if p.id == page_id), None)

    def pages_of(self, course_id: str) -> list[Page]:
        """Get pages of one course in index order."""
        return [p for p in self.pages if p.course_id == course_id]

    def modules_of(self, course_id: str) -> list[Module]:
        """Get modules of one course in index order."""
        return [m for m in self.modules if m.course_id == course_id]

    def course_order(self) -> list[CourseId]:
        """Get course ids ordered by rank."""
        return [c.id for c in sorted(self.courses, key=lambda c: (c.order, c.id))]


class ContentStore:
    """Content index backed by a JSON file.

    The file is parsed lazily on first read and kept until reload() or a
    write. Refresh listeners run after every reload and write so derived
    caches can drop stale entries.
    """

    def __init__(self, index_path: Path) -> None:
        """Initialize store with index file path.

        Args:
            index_path: Path to the JSON content index. A missing file is
                treated as an empty index.
        """
        self._index_path = index_path
        self._snapshot: ContentSnapshot | None = None
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []

    @property
    def index_path(self) -> Path:
        """Content index file."""
        return self._index_path

    def add_refresh_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after the content changes."""
        self._listeners.append(listener)

    def snapshot(self) -> ContentSnapshot:
        """Return the current snapshot, loading the index if needed.

        Raises:
            ContentIndexError: If the index file is malformed
        """
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._load()
            return self._snapshot

    def get_pages(self, course_id: str | None = None) -> list[Page]:
        """Get pages, optionally limited to one course."""
        snapshot = self.snapshot()
        if course_id is None:
            return list(snapshot.pages)
        return snapshot.pages_of(course_id)

    def get_courses(self) -> list[Course]:
        """Get courses ordered by rank."""
        snapshot = self.snapshot()
        return sorted(snapshot.courses, key=lambda c: (c.order, c.id))

    def get_modules(self, course_id: str) -> list[Module]:
        """Get modules of a course ordered by rank."""
        return sorted(self.snapshot().modules_of(course_id), key=lambda m: (m.order, m.id))

    def reload(self) -> None:
        """Drop the loaded snapshot so the next read re-parses the index."""
        with self._lock:
            self._snapshot = None
        logger.info(f"Content index reloaded: {self._index_path}")
        self._notify()

    def persist_order(
        self,
        course_id: str,
        order: CanonicalOrder,
        *,
        expected_revision: str | None = None,
    ) -> ContentSnapshot:
        """Write a canonical ordering of one course back to the index.

        Args:
            course_id: Course the ordering belongs to
            order: Canonical ordering covering every module and chapter
            expected_revision: Revision the ordering was computed from.
                If given and the index moved on, nothing is written.

        Returns:
            Snapshot after the write

        Raises:
            CourseNotFoundError: If the course is not in the index
            ForeignReferenceError: If the ordering names an identifier
                outside the course
            RevisionConflictError: If expected_revision is stale
            ValueError: If the ordering leaves out modules or chapters
            OSError: If the index file cannot be written
        """
        with self._lock:
            current = self._snapshot if self._snapshot is not None else self._load()
            if expected_revision is not None and expected_revision != current.revision:
                raise RevisionConflictError(expected_revision, current.revision)

            updated = _reorder(current, course_id, order)
            raw = json.dumps(dump_index(updated), indent=2, ensure_ascii=False).encode("utf-8")
            self._write(raw)
            self._snapshot = replace(updated, revision=compute_revision(raw))
            snapshot = self._snapshot

        logger.info(f"Persisted order for course {course_id} (revision {snapshot.revision})")
        self._notify()
        return snapshot

    def _load(self) -> ContentSnapshot:
        if not self._index_path.exists():
            return ContentSnapshot(courses=(), modules=(), pages=(), revision=compute_revision(b""))

        raw = self._index_path.read_bytes()
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ContentIndexError(f"Content index is not valid JSON: {e}") from e

        return parse_index(data, compute_revision(raw))

    def _write(self, raw: bytes) -> None:
        self._index_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_name(f".{self._index_path.name}.tmp")
        try:
            tmp_path.write_bytes(raw)
            os.replace(tmp_path, self._index_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()


def parse_index(data: object, revision: str) -> ContentSnapshot:
    """Parse content index data into a snapshot.

    Args:
        data: Decoded JSON document
        revision: Revision tag of the source

    Returns:
        ContentSnapshot

    Raises:
        ContentIndexError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise ContentIndexError("Content index must be a dictionary")

    courses_raw = data.get("courses", [])
    if not isinstance(courses_raw, list):
        raise ContentIndexError("courses must be a list")

    courses: list[Course] = []
    modules: list[Module] = []
    pages: list[Page] = []
    for i, course_raw in enumerate(courses_raw):
        course, course_modules, course_pages = _parse_course(course_raw, f"courses[{i}]", i + 1)
        courses.append(course)
        modules.extend(course_modules)
        pages.extend(course_pages)

    _check_unique([c.id for c in courses], "course")
    _check_unique([m.id for m in modules], "module")
    _check_unique([p.id for p in pages], "page")

    return ContentSnapshot(
        courses=tuple(courses),
        modules=tuple(modules),
        pages=tuple(pages),
        revision=revision,
    )


def _parse_course(data: object, where: str, default_order: int) -> tuple[Course, list[Module], list[Page]]:
    if not isinstance(data, dict):
        raise ContentIndexError(f"{where} must be a dictionary")

    course_id = CourseId(_require_str(data, "id", where))
    title = _optional_str(data, "title", where, default=course_id)
    order = _optional_int(data, "order", where, default=default_order)

    modules_raw = data.get("modules", [])
    if not isinstance(modules_raw, list):
        raise ContentIndexError(f"{where}.modules must be a list")

    modules: list[Module] = []
    pages: list[Page] = []
    for i, module_raw in enumerate(modules_raw):
        module_where = f"{where}.modules[{i}]"
        if not isinstance(module_raw, dict):
            raise ContentIndexError(f"{module_where} must be a dictionary")

        module = Module(
            id=ModuleId(_require_str(module_raw, "id", module_where)),
            course_id=course_id,
            title=_optional_str(module_raw, "title", module_where, default=""),
            order=_optional_int(module_raw, "order", module_where, default=i + 1),
        )
        modules.append(module)

        chapters_raw = module_raw.get("chapters", [])
        if not isinstance(chapters_raw, list):
            raise ContentIndexError(f"{module_where}.chapters must be a list")
        for j, chapter_raw in enumerate(chapters_raw):
            pages.append(
                _parse_chapter(chapter_raw, f"{module_where}.chapters[{j}]", j + 1, module, title),
            )

    course = Course(
        id=course_id,
        title=title,
        order=order,
        module_ids=tuple(m.id for m in sorted(modules, key=lambda m: (m.order, m.id))),
    )
    return course, modules, pages


def _parse_chapter(data: object, where: str, default_order: int, module: Module, course_title: str) -> Page:
    if not isinstance(data, dict):
        raise ContentIndexError(f"{where} must be a dictionary")

    tags_raw = data.get("tags", [])
    if not isinstance(tags_raw, list) or not all(isinstance(t, str) for t in tags_raw):
        raise ContentIndexError(f"{where}.tags must be a list of strings")

    metadata_raw = data.get("metadata", {})
    if not isinstance(metadata_raw, dict):
        raise ContentIndexError(f"{where}.metadata must be a dictionary")
    metadata: dict[str, str] = {}
    for key, value in metadata_raw.items():
        if not isinstance(value, str):
            raise ContentIndexError(f"{where}.metadata.{key} must be a string")
        metadata[key] = value

    updated_raw = data.get("updatedAt")
    updated_at: datetime | None = None
    if updated_raw is not None:
        if not isinstance(updated_raw, str):
            raise ContentIndexError(f"{where}.updatedAt must be a string")
        try:
            updated_at = datetime.fromisoformat(updated_raw)
        except ValueError as e:
            raise ContentIndexError(f"{where}.updatedAt is not an ISO timestamp") from e

    return Page(
        id=PageId(_require_str(data, "id", where)),
        title=_optional_str(data, "title", where, default=""),
        course_id=module.course_id,
        module_id=module.id,
        order=_optional_int(data, "order", where, default=default_order),
        module_order=module.order,
        content=_optional_str(data, "content", where, default=""),
        course_title=course_title,
        module_title=module.title,
        description=_optional_str(data, "description", where, default=""),
        tags=tuple(tags_raw),
        metadata=metadata,
        updated_at=updated_at,
    )


def _require_str(data: dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ContentIndexError(f"{where}.{key} must be a non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, where: str, *, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ContentIndexError(f"{where}.{key} must be a string")
    return value


def _optional_int(data: dict[str, Any], key: str, where: str, *, default: int) -> int:
    value = data.get(key, default)
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool):
        raise ContentIndexError(f"{where}.{key} must be an integer")
    return value


def _check_unique(ids: list[str], kind: str) -> None:
    seen: set[str] = set()
    for identifier in ids:
        if identifier in seen:
            raise ContentIndexError(f"Duplicate {kind} id: {identifier}")
        seen.add(identifier)


def _reorder(snapshot: ContentSnapshot, course_id: str, order: CanonicalOrder) -> ContentSnapshot:
    """Apply a canonical ordering to one course of a snapshot."""
    course = snapshot.course(course_id)
    if course is None:
        raise CourseNotFoundError(course_id)

    module_ranks = {m.module_id: m.rank for m in order.modules}
    placements = {c.chapter_id: c for c in order.chapters}

    course_modules = {m.id: m for m in snapshot.modules_of(course_id)}
    course_pages = {p.id: p for p in snapshot.pages_of(course_id)}

    for module_id in module_ranks:
        if module_id not in course_modules:
            raise ForeignReferenceError("Module", module_id, course_id)
    for chapter_id, placement in placements.items():
        if chapter_id not in course_pages:
            raise ForeignReferenceError("Chapter", chapter_id, course_id)
        if placement.module_id not in course_modules:
            raise ForeignReferenceError("Module", placement.module_id, course_id)

    missing_modules = course_modules.keys() - module_ranks.keys()
    missing_pages = course_pages.keys() - placements.keys()
    if missing_modules or missing_pages:
        missing = sorted(missing_modules | missing_pages)
        raise ValueError(f"Order for course {course_id} does not cover: {', '.join(missing)}")

    modules = tuple(
        replace(m, order=module_ranks[m.id]) if m.course_id == course_id else m
        for m in snapshot.modules
    )
    by_id = {m.id: m for m in modules}

    pages: list[Page] = []
    for page in snapshot.pages:
        placement = placements.get(page.id) if page.course_id == course_id else None
        if placement is None:
            pages.append(page)
            continue
        target = by_id[placement.module_id]
        pages.append(
            replace(
                page,
                module_id=target.id,
                module_title=target.title,
                module_order=target.order,
                order=placement.rank,
            ),
        )

    courses = tuple(
        replace(c, module_ids=tuple(m.module_id for m in sorted(order.modules, key=lambda m: m.rank)))
        if c.id == course_id
        else c
        for c in snapshot.courses
    )
    return replace(snapshot, courses=courses, modules=modules, pages=tuple(pages))


def dump_index(snapshot: ContentSnapshot) -> dict[str, Any]:
    """Convert a snapshot back into the index document structure.

    Modules and chapters are written in rank order.
    """
    courses: list[dict[str, Any]] = []
    for course in sorted(snapshot.courses, key=lambda c: (c.order, c.id)):
        modules: list[dict[str, Any]] = []
        for module in sorted(snapshot.modules_of(course.id), key=lambda m: (m.order, m.id)):
            chapters = sorted(
                (p for p in snapshot.pages if p.module_id == module.id),
                key=lambda p: (p.order, p.id),
            )
            modules.append(
                {
                    "id": module.id,
                    "title": module.title,
                    "order": module.order,
                    "chapters": [_dump_chapter(p) for p in chapters],
                },
            )
        courses.append(
            {"id": course.id, "title": course.title, "order": course.order, "modules": modules},
        )
    return {"courses": courses}


def _dump_chapter(page: Page) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": page.id,
        "title": page.title,
        "order": page.order,
        "content": page.content,
    }
    if page.description:
        result["description"] = page.description
    if page.tags:
        result["tags"] = list(page.tags)
    if page.metadata:
        result["metadata"] = dict(page.metadata)
    if page.updated_at is not None:
        result["updatedAt"] = page.updated_at.isoformat()
    return result
