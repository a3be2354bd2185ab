"""Previous/next navigation within a course.

Walks the same page order the table of contents shows, so the links follow
what the reader sees in the sidebar, crossing module boundaries.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from coursenav.core.errors import PageNotFoundError
from coursenav.core.pages import Page
from coursenav.core.toc import course_sequence
from coursenav.core.types import CourseId, ModuleId, PageId


@dataclass(frozen=True)
class NavLink:
    """Link to a neighbouring page."""

    id: PageId
    title: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "title": self.title}


@dataclass(frozen=True)
class PageNavigation:
    """Resolved position of a page within its course."""

    page_id: PageId
    course_id: CourseId
    module_id: ModuleId
    position: int
    total: int
    previous: NavLink | None
    next: NavLink | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pageId": self.page_id,
            "courseId": self.course_id,
            "moduleId": self.module_id,
            "position": self.position,
            "total": self.total,
            "previous": self.previous.to_dict() if self.previous else None,
            "next": self.next.to_dict() if self.next else None,
        }


def resolve_navigation(pages: Sequence[Page], page_id: PageId) -> PageNavigation:
    """Find the neighbours of a page within its course.

    Args:
        pages: Page records, in any order
        page_id: Page to resolve

    Returns:
        PageNavigation with previous/next links (None at course edges)

    Raises:
        PageNotFoundError: If page_id is not in pages
    """
    target = next((page for page in pages if page.id == page_id), None)
    if target is None:
        raise PageNotFoundError(page_id)

    sequence = course_sequence(pages, target.course_id)
    idx = next(i for i, page in enumerate(sequence) if page.id == page_id)

    previous = sequence[idx - 1] if idx > 0 else None
    following = sequence[idx + 1] if idx + 1 < len(sequence) else None

    return PageNavigation(
        page_id=target.id,
        course_id=target.course_id,
        module_id=target.module_id,
        position=idx + 1,
        total=len(sequence),
        previous=_link(previous),
        next=_link(following),
    )


def _link(page: Page | None) -> NavLink | None:
    if page is None:
        return None
    return NavLink(id=page.id, title=page.title)
