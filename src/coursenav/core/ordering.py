"""Module and chapter re-ordering.

Turns positions submitted by the course editor into a canonical ordering:
contiguous ranks 1..N for modules and 1..M per module for chapters. The
submitted positions come straight from the browser and may contain gaps,
duplicates, or values out of range; only their relative order is used.

Nothing is persisted here. The result is handed to the content store.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from coursenav.core.errors import CourseNotFoundError, ForeignReferenceError
from coursenav.core.pages import Module, Page
from coursenav.core.toc import course_sequence
from coursenav.core.types import CourseId, ModuleId, PageId

logger = logging.getLogger(__name__)

_Entry = TypeVar("_Entry")


@dataclass(frozen=True)
class ModulePosition:
    """Submitted position of a module."""

    module_id: ModuleId
    position: int


@dataclass(frozen=True)
class ChapterPosition:
    """Submitted position of a chapter within its (possibly new) module."""

    chapter_id: PageId
    module_id: ModuleId
    position: int


@dataclass(frozen=True)
class ModuleRank:
    """Canonical module rank within a course."""

    module_id: ModuleId
    rank: int


@dataclass(frozen=True)
class ChapterRank:
    """Canonical chapter rank within a module."""

    chapter_id: PageId
    module_id: ModuleId
    rank: int


@dataclass(frozen=True)
class CanonicalOrder:
    """Gap-free ordering of one course, ready to persist."""

    course_id: CourseId
    modules: tuple[ModuleRank, ...]
    chapters: tuple[ChapterRank, ...]

    def module_rank(self, module_id: ModuleId) -> int | None:
        """Return rank of a module, None if not part of the ordering."""
        return next((m.rank for m in self.modules if m.module_id == module_id), None)

    def chapter(self, chapter_id: PageId) -> ChapterRank | None:
        """Return placement of a chapter, None if not part of the ordering."""
        return next((c for c in self.chapters if c.chapter_id == chapter_id), None)

    def chapters_of(self, module_id: ModuleId) -> list[ChapterRank]:
        """Return chapters of a module in rank order."""
        return [c for c in self.chapters if c.module_id == module_id]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "courseId": self.course_id,
            "modules": [{"id": m.module_id, "rank": m.rank} for m in self.modules],
            "chapters": [
                {"id": c.chapter_id, "moduleId": c.module_id, "rank": c.rank}
                for c in self.chapters
            ],
        }


def apply_order(
    pages: Sequence[Page],
    course_id: CourseId,
    module_order: Iterable[ModulePosition],
    chapter_order: Iterable[ChapterPosition],
    *,
    modules: Iterable[Module] = (),
) -> CanonicalOrder:
    """Normalize a submitted ordering of a course.

    Modules and chapters are sorted by submitted position. Ties keep the
    current course order. Anything not mentioned in the submission keeps its
    current relative order after the submitted entries. Chapters may move to
    another module of the same course.

    Args:
        pages: Page records (only pages of course_id are considered)
        course_id: Course being edited
        module_order: Submitted module positions
        chapter_order: Submitted chapter positions
        modules: Module records of the course, so modules without
            chapters can be ordered too

    Returns:
        CanonicalOrder with contiguous ranks

    Raises:
        CourseNotFoundError: If the course has no pages and no modules
        ForeignReferenceError: If an entry references a module or chapter
            outside the course
    """
    course_pages = course_sequence(pages, course_id)
    current_modules = _current_module_order(course_pages, course_id, modules)
    if not current_modules:
        raise CourseNotFoundError(course_id)

    module_index = {module_id: i for i, module_id in enumerate(current_modules)}
    page_index = {page.id: i for i, page in enumerate(course_pages)}
    home_module = {page.id: page.module_id for page in course_pages}

    submitted_modules = _first_occurrences(
        module_order, lambda e: e.module_id, "module", course_id
    )
    submitted_chapters = _first_occurrences(
        chapter_order, lambda e: e.chapter_id, "chapter", course_id
    )

    for module_entry in submitted_modules:
        if module_entry.module_id not in module_index:
            raise ForeignReferenceError("Module", module_entry.module_id, course_id)
    for chapter_entry in submitted_chapters:
        if chapter_entry.chapter_id not in home_module:
            raise ForeignReferenceError("Chapter", chapter_entry.chapter_id, course_id)
        if chapter_entry.module_id not in module_index:
            raise ForeignReferenceError("Module", chapter_entry.module_id, course_id)

    ordered = sorted(
        submitted_modules,
        key=lambda e: (e.position, module_index[e.module_id]),
    )
    module_ids = [e.module_id for e in ordered]
    mentioned = set(module_ids)
    module_ids += [m for m in current_modules if m not in mentioned]

    placed: dict[ModuleId, list[ChapterPosition]] = {m: [] for m in module_ids}
    for chapter_entry in submitted_chapters:
        placed[chapter_entry.module_id].append(chapter_entry)

    submitted_ids = {e.chapter_id for e in submitted_chapters}
    remaining: dict[ModuleId, list[PageId]] = {m: [] for m in module_ids}
    for page in course_pages:
        if page.id not in submitted_ids:
            remaining[page.module_id].append(page.id)

    chapters: list[ChapterRank] = []
    for module_id in module_ids:
        members = sorted(
            placed[module_id],
            key=lambda e: (e.position, page_index[e.chapter_id]),
        )
        chapter_ids = [e.chapter_id for e in members] + remaining[module_id]
        chapters.extend(
            ChapterRank(chapter_id=chapter_id, module_id=module_id, rank=rank)
            for rank, chapter_id in enumerate(chapter_ids, start=1)
        )

    return CanonicalOrder(
        course_id=course_id,
        modules=tuple(
            ModuleRank(module_id=module_id, rank=rank)
            for rank, module_id in enumerate(module_ids, start=1)
        ),
        chapters=tuple(chapters),
    )


def _current_module_order(
    course_pages: list[Page],
    course_id: CourseId,
    modules: Iterable[Module],
) -> list[ModuleId]:
    """Return module ids of a course in their current order."""
    ranks: dict[ModuleId, int] = {}
    for module in modules:
        if module.course_id == course_id:
            ranks[module.id] = module.order
    for page in course_pages:
        rank = ranks.get(page.module_id)
        if rank is None or page.module_order < rank:
            ranks[page.module_id] = page.module_order
    return sorted(ranks, key=lambda module_id: (ranks[module_id], module_id))


def _first_occurrences(
    entries: Iterable[_Entry],
    key: Callable[[_Entry], str],
    kind: str,
    course_id: CourseId,
) -> list[_Entry]:
    seen: set[str] = set()
    result: list[_Entry] = []
    for entry in entries:
        identifier = key(entry)
        if identifier in seen:
            logger.warning(f"Ignoring repeated {kind} {identifier} in order for course {course_id}")
            continue
        seen.add(identifier)
        result.append(entry)
    return result
