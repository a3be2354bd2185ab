"""Category aggregation.

Folds pages into category summaries keyed by their `category` metadata.
Categories are derived on demand and never persisted.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from coursenav.core.pages import Page
from coursenav.core.toc import build_toc

logger = logging.getLogger(__name__)

CATEGORY_KEY = "category"
READ_TIME_KEY = "readTimeMinutes"


@dataclass(frozen=True)
class CategoryStyle:
    """Icon reference and description shown for a category."""

    icon: str
    description: str


@dataclass(frozen=True)
class Category:
    """Aggregate of the pages sharing a category title."""

    title: str
    icon: str
    description: str
    link: str
    article_count: int
    read_time: int | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "icon": self.icon,
            "description": self.description,
            "link": self.link,
            "articleCount": self.article_count,
            "readTime": self.read_time,
        }


class CategoryCatalog:
    """Immutable lookup of category styles by exact display title."""

    __slots__ = ("_fallback", "_styles")

    def __init__(self, styles: Mapping[str, CategoryStyle], fallback: CategoryStyle) -> None:
        self._styles = MappingProxyType(dict(styles))
        self._fallback = fallback

    @property
    def fallback(self) -> CategoryStyle:
        """Style used for unrecognized titles."""
        return self._fallback

    def style_for(self, title: str) -> CategoryStyle:
        """Return style for a display title (case-sensitive match)."""
        return self._styles.get(title, self._fallback)


_GENERIC_DESCRIPTION = "Explore our documentation for more information."

DEFAULT_CATALOG = CategoryCatalog(
    {
        "Quick Start": CategoryStyle("fa-solid fa-rocket", _GENERIC_DESCRIPTION),
        "Authoring Content": CategoryStyle("fa-solid fa-book", _GENERIC_DESCRIPTION),
        "Getting Started": CategoryStyle(
            "fa-solid fa-rocket",
            "Everything you need to begin your journey. Installation guides, "
            "quick start tutorials, and basic concepts.",
        ),
        "Using Courses": CategoryStyle(
            "fa-solid fa-code",
            "Learn how to build courses and chapters. From basic structure to "
            "advanced features, find step-by-step guides.",
        ),
        "Deploying": CategoryStyle(
            "fa-solid fa-cloud-arrow-up",
            "Understand how to deploy your courses effectively. Covers hosting "
            "options, deployment strategies, and best practices.",
        ),
        "Deploying to Azure": CategoryStyle("fa-solid fa-cloud-arrow-up", _GENERIC_DESCRIPTION),
        "Deploying to GitHub": CategoryStyle("fa-solid fa-cloud-arrow-up", _GENERIC_DESCRIPTION),
        "Contributing": CategoryStyle(
            "fa-solid fa-gear",
            "Internals of the platform and how to contribute. Learn about the "
            "build pipeline, code standards, and how to submit changes.",
        ),
        "Meta": CategoryStyle(
            "fa-solid fa-circle-info",
            "Meta information about the project, including its philosophy, "
            "FAQ, and product roadmap.",
        ),
        "FAQ": CategoryStyle("fa-solid fa-circle-question", _GENERIC_DESCRIPTION),
    },
    fallback=CategoryStyle("fa-solid fa-link", _GENERIC_DESCRIPTION),
)


def category_key(title: str) -> str:
    """Return identity key of a category title (trimmed, case-insensitive)."""
    return title.strip().casefold()


def page_category(page: Page) -> str | None:
    """Return trimmed category title of a page, None if unset or blank."""
    value = page.get_meta(CATEGORY_KEY)
    if value is None or not value.strip():
        return None
    return value.strip()


def parse_read_time(page: Page) -> int | None:
    """Return read time in minutes, None if missing or malformed.

    Malformed values are logged and otherwise ignored.
    """
    value = page.get_meta(READ_TIME_KEY)
    if value is None:
        return None
    text = value.strip()
    # Plain ASCII digits only; int() would also take "1_000" or full-width digits
    if not (text.isascii() and text.isdigit()):
        logger.debug(f"Ignoring malformed {READ_TIME_KEY} {value!r} on page {page.id}")
        return None
    return int(text)


class CategoryAggregator:
    """Builds category summaries from a page collection.

    Categories are returned in order of first appearance. The display title
    is the first casing seen; later spellings with different case or
    surrounding whitespace are merged into it.
    """

    def __init__(self, catalog: CategoryCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> CategoryCatalog:
        return self._catalog

    def aggregate(self, pages: Iterable[Page]) -> list[Category]:
        """Fold pages into categories.

        Args:
            pages: Page records; pages without a category are skipped

        Returns:
            List of Category summaries, empty if no page has a category
        """
        titles: dict[str, str] = {}
        counts: dict[str, int] = {}
        read_times: dict[str, int | None] = {}

        for page in pages:
            title = page_category(page)
            if title is None:
                continue

            key = category_key(title)
            minutes = parse_read_time(page)
            if key not in titles:
                titles[key] = title
                counts[key] = 0
                read_times[key] = None

            counts[key] += 1
            if minutes is not None:
                read_times[key] = (read_times[key] or 0) + minutes

        return [self._build(titles[key], key, counts[key], read_times[key]) for key in titles]

    def _build(self, title: str, key: str, count: int, read_time: int | None) -> Category:
        style = self._catalog.style_for(title)
        return Category(
            title=title,
            icon=style.icon,
            description=style.description,
            link=f"/categories/{key}",
            article_count=count,
            read_time=read_time,
        )


class CategoryCache:
    """Memoized categories for one content revision.

    Entries are keyed by the revision they were computed from, so a cache
    shared across a store refresh never serves stale categories. The store
    also calls invalidate() on refresh to release the old entry early.
    """

    def __init__(self, aggregator: CategoryAggregator | None = None) -> None:
        self._aggregator = aggregator or CategoryAggregator()
        self._revision: str | None = None
        self._categories: list[Category] = []

    @property
    def aggregator(self) -> CategoryAggregator:
        return self._aggregator

    def get(self, revision: str, pages: Callable[[], Iterable[Page]]) -> list[Category]:
        """Return categories for a revision, computing them on a miss.

        Args:
            revision: Content revision the pages belong to
            pages: Supplier of the page collection for that revision

        Returns:
            Copy of the cached category list
        """
        if self._revision != revision:
            self._categories = self._aggregator.aggregate(pages())
            self._revision = revision
        return list(self._categories)

    def invalidate(self) -> None:
        """Drop the cached entry."""
        self._revision = None
        self._categories = []


def category_pages(pages: Iterable[Page], title: str) -> list[Page]:
    """Return pages of one category in table of contents order.

    Args:
        pages: Page records
        title: Category title (matched trimmed and case-insensitive)

    Returns:
        Matching pages, empty if none
    """
    key = category_key(title)
    if not key:
        return []
    members = [p for p in pages if (c := page_category(p)) is not None and category_key(c) == key]
    by_id = {p.id: p for p in members}
    return [
        by_id[node.id]
        for course in build_toc(members)
        for node in course.iter_pages()
    ]
