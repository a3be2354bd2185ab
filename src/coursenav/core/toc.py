"""Table of contents builder.

Builds course → module → page trees from a flat page collection. The tree
is a view over the page records: it depends only on the ranks stored on each
page, never on the order pages arrive in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal, TypedDict

from coursenav.core.pages import Page
from coursenav.core.types import CourseId, ModuleId

TocKind = Literal["course", "module", "page"]


class TocNodeDict(TypedDict, total=False):
    """Dictionary representation of a table of contents node."""

    kind: str
    id: str
    title: str
    children: list[TocNodeDict]


@dataclass
class TocNode:
    """Course, module, or page node in display order."""

    kind: TocKind
    id: str
    title: str
    children: list[TocNode] = field(default_factory=list)

    def to_dict(self) -> TocNodeDict:
        """Convert to dictionary for JSON serialization."""
        result: TocNodeDict = {"kind": self.kind, "id": self.id, "title": self.title}
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result

    def iter_pages(self) -> Iterable[TocNode]:
        """Yield page nodes below this node in display order."""
        if self.kind == "page":
            yield self
            return
        for child in self.children:
            yield from child.iter_pages()


def build_toc(
    pages: Iterable[Page],
    course_order: Sequence[CourseId] | None = None,
) -> list[TocNode]:
    """Build table of contents trees from a flat page collection.

    Args:
        pages: Page records, in any order
        course_order: Explicit course order. Courses not listed follow,
            sorted by identifier.

    Returns:
        One course node per course, empty for empty input
    """
    by_course = _group_by_course(pages)
    return [
        _build_course_node(course_id, by_course[course_id])
        for course_id in _ordered_course_ids(by_course, course_order)
    ]


def course_sequence(pages: Iterable[Page], course_id: CourseId) -> list[Page]:
    """Return the pages of one course in table of contents order.

    Args:
        pages: Page records, in any order
        course_id: Course to flatten

    Returns:
        Pages ordered by module rank, then page rank
    """
    members = [page for page in pages if page.course_id == course_id]
    return [page for _, module_pages in _ordered_modules(members) for page in module_pages]


def _group_by_course(pages: Iterable[Page]) -> dict[CourseId, list[Page]]:
    grouped: dict[CourseId, list[Page]] = {}
    for page in pages:
        grouped.setdefault(page.course_id, []).append(page)
    return grouped


def _ordered_course_ids(
    by_course: dict[CourseId, list[Page]],
    course_order: Sequence[CourseId] | None,
) -> list[CourseId]:
    explicit = [cid for cid in dict.fromkeys(course_order or ()) if cid in by_course]
    listed = set(explicit)
    return explicit + sorted(cid for cid in by_course if cid not in listed)


def _ordered_modules(pages: list[Page]) -> list[tuple[ModuleId, list[Page]]]:
    """Group pages of one course by module, both levels sorted by rank.

    A module whose pages disagree on its rank takes the smallest one.
    Ties fall back to identifiers so the order is total.
    """
    modules: dict[ModuleId, list[Page]] = {}
    for page in pages:
        modules.setdefault(page.module_id, []).append(page)

    for members in modules.values():
        members.sort(key=lambda p: (p.order, p.id))

    return sorted(
        modules.items(),
        key=lambda item: (min(p.module_order for p in item[1]), item[0]),
    )


def _build_course_node(course_id: CourseId, pages: list[Page]) -> TocNode:
    modules = _ordered_modules(pages)
    ordered = [page for _, members in modules for page in members]
    return TocNode(
        kind="course",
        id=course_id,
        title=_first_title(p.course_title for p in ordered) or course_id,
        children=[_build_module_node(module_id, members) for module_id, members in modules],
    )


def _build_module_node(module_id: ModuleId, pages: list[Page]) -> TocNode:
    return TocNode(
        kind="module",
        id=module_id,
        title=_first_title(p.module_title for p in pages) or module_id,
        children=[TocNode(kind="page", id=p.id, title=p.title) for p in pages],
    )


def _first_title(titles: Iterable[str]) -> str | None:
    return next((title for title in titles if title), None)
