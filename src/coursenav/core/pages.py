"""Content records for courses, modules, and pages.

Records are immutable snapshots handed out by the content store. Navigation,
ordering, and category views are computed from them and never modify them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from coursenav.core.types import CourseId, ModuleId, PageId


@dataclass(frozen=True)
class Page:
    """Content page (a chapter of a module).

    `order` ranks the page within its module and `module_order` ranks the
    module within its course. Both are copied onto every page so a flat page
    list is enough to rebuild the course structure.
    """

    id: PageId
    title: str
    course_id: CourseId
    module_id: ModuleId
    order: int
    module_order: int
    content: str = ""
    course_title: str = ""
    module_title: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    updated_at: datetime | None = None

    def get_meta(self, key: str) -> str | None:
        """Return metadata value, None when the key is unset."""
        return self.metadata.get(key)


@dataclass(frozen=True)
class Module:
    """Group of pages within a course."""

    id: ModuleId
    course_id: CourseId
    title: str
    order: int


@dataclass(frozen=True)
class Course:
    """Top-level container of modules."""

    id: CourseId
    title: str
    order: int
    module_ids: tuple[ModuleId, ...] = ()

    def to_dict(self) -> dict[str, str | int]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "moduleCount": len(self.module_ids),
        }
