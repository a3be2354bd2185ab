"""Page queries for the landing view and search."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from coursenav.core.categories import page_category
from coursenav.core.pages import Page
from coursenav.core.types import PageId

QUICK_ACCESS_KEY = "quickAccess"
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class SearchResult:
    """Search hit."""

    id: PageId
    title: str
    description: str
    category: str
    tags: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "tags": self.tags,
        }


def quick_access_pages(pages: Iterable[Page], limit: int = 5) -> list[Page]:
    """Return pages pinned for quick access.

    A page is pinned when its `quickAccess` metadata is a positive integer;
    pins are ordered by that integer.
    """
    pinned: list[tuple[int, Page]] = []
    for page in pages:
        value = page.get_meta(QUICK_ACCESS_KEY)
        if value is None:
            continue
        try:
            rank = int(value.strip())
        except ValueError:
            continue
        if rank > 0:
            pinned.append((rank, page))

    pinned.sort(key=lambda item: (item[0], item[1].id))
    return [page for _, page in pinned[:limit]]


def recent_updates(pages: Iterable[Page], limit: int = 4) -> list[Page]:
    """Return most recently updated pages, undated pages last."""
    by_id = sorted(pages, key=lambda p: p.id)
    dated = [p for p in by_id if p.updated_at is not None]
    undated = [p for p in by_id if p.updated_at is None]

    # Stable sort keeps id order among equal timestamps
    dated.sort(key=lambda p: _as_utc(p.updated_at), reverse=True)
    return (dated + undated)[:limit]


def search(pages: Iterable[Page], term: str, max_results: int | None = None) -> list[SearchResult]:
    """Search pages by title, description, tags, and metadata.

    Title, description, and tags match on case-insensitive substrings.
    Metadata matches when a key or value equals the term, ignoring case.

    Args:
        pages: Page records
        term: Search term; blank terms return no results
        max_results: Optional cap on the number of results

    Returns:
        List of SearchResult in page order
    """
    needle = term.strip().casefold()
    if not needle:
        return []

    results: list[SearchResult] = []
    for page in pages:
        if max_results is not None and len(results) >= max_results:
            break
        if not _matches(page, needle):
            continue
        results.append(
            SearchResult(
                id=page.id,
                title=page.title,
                description=page.description,
                category=page_category(page) or UNCATEGORIZED,
                tags=", ".join(page.tags),
            ),
        )
    return results


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.min.replace(tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _matches(page: Page, needle: str) -> bool:
    if needle in page.title.casefold() or needle in page.description.casefold():
        return True
    if any(needle in tag.casefold() for tag in page.tags):
        return True
    return any(
        key.casefold() == needle or value.casefold() == needle
        for key, value in page.metadata.items()
    )
