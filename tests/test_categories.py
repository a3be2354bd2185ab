"""Tests for category aggregation."""

import logging

import pytest
from coursenav.core.categories import (
    DEFAULT_CATALOG,
    Category,
    CategoryAggregator,
    CategoryCache,
    CategoryCatalog,
    CategoryStyle,
    category_pages,
    parse_read_time,
)
from coursenav.core.pages import Page
from coursenav.core.types import CourseId, ModuleId, PageId


def _page(page_id: str, order: int = 1, **metadata: str) -> Page:
    return Page(
        id=PageId(page_id),
        title=page_id,
        course_id=CourseId("c1"),
        module_id=ModuleId("m1"),
        order=order,
        module_order=1,
        metadata=metadata,
    )


class TestCategoryAggregator:
    """Tests for CategoryAggregator.aggregate()."""

    @pytest.fixture
    def aggregator(self) -> CategoryAggregator:
        return CategoryAggregator()

    def test__empty_input__returns_empty(self, aggregator: CategoryAggregator) -> None:
        """No pages, no categories."""
        assert aggregator.aggregate([]) == []

    def test__case_variants__merge_into_first_title(self, aggregator: CategoryAggregator) -> None:
        """Titles differing only in case form one category."""
        pages = [
            _page("p1", category="FAQ", readTimeMinutes="5"),
            _page("p2", category="faq", readTimeMinutes="3"),
        ]

        result = aggregator.aggregate(pages)

        assert len(result) == 1
        assert result[0].title == "FAQ"
        assert result[0].article_count == 2
        assert result[0].read_time == 8

    def test__blank_category__is_excluded(self, aggregator: CategoryAggregator) -> None:
        """Pages with empty or missing categories are skipped."""
        pages = [
            _page("p1", category=""),
            _page("p2", category="Meta", readTimeMinutes="2"),
            _page("p3"),
            _page("p4", category="   "),
        ]

        result = aggregator.aggregate(pages)

        assert [(c.title, c.article_count) for c in result] == [("Meta", 1)]

    def test__surrounding_whitespace__is_trimmed(self, aggregator: CategoryAggregator) -> None:
        """Identity ignores surrounding whitespace."""
        pages = [_page("p1", category="  Meta "), _page("p2", category="meta")]

        result = aggregator.aggregate(pages)

        assert len(result) == 1
        assert result[0].title == "Meta"
        assert result[0].article_count == 2

    def test__no_read_times__leaves_read_time_unset(self, aggregator: CategoryAggregator) -> None:
        """Cumulative read time is absent when no page defines one."""
        result = aggregator.aggregate([_page("p1", category="FAQ"), _page("p2", category="FAQ")])

        assert result[0].read_time is None

    def test__later_read_time__defines_cumulative_value(self, aggregator: CategoryAggregator) -> None:
        """A first page without read time does not block later ones."""
        pages = [
            _page("p1", category="FAQ"),
            _page("p2", category="FAQ", readTimeMinutes="4"),
            _page("p3", category="FAQ"),
        ]

        result = aggregator.aggregate(pages)

        assert result[0].read_time == 4

    def test__malformed_read_time__contributes_zero(
        self,
        aggregator: CategoryAggregator,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Unparseable read times are ignored without failing."""
        pages = [
            _page("p1", category="FAQ", readTimeMinutes="five"),
            _page("p2", category="FAQ", readTimeMinutes="6"),
        ]

        with caplog.at_level(logging.DEBUG, logger="coursenav.core.categories"):
            result = aggregator.aggregate(pages)

        assert result[0].read_time == 6
        assert result[0].article_count == 2
        assert "malformed readTimeMinutes" in caplog.text

    def test__categories__keep_first_appearance_order(self, aggregator: CategoryAggregator) -> None:
        """Categories are listed in the order they are first seen."""
        pages = [
            _page("p1", category="Meta"),
            _page("p2", category="FAQ"),
            _page("p3", category="meta"),
        ]

        assert [c.title for c in aggregator.aggregate(pages)] == ["Meta", "FAQ"]

    def test__known_title__uses_catalog_style(self, aggregator: CategoryAggregator) -> None:
        """Icons and descriptions come from the catalog."""
        result = aggregator.aggregate([_page("p1", category="Getting Started")])

        style = DEFAULT_CATALOG.style_for("Getting Started")
        assert result[0].icon == style.icon
        assert result[0].description == style.description
        assert result[0].icon == "fa-solid fa-rocket"

    def test__unknown_title__uses_fallback_style(self, aggregator: CategoryAggregator) -> None:
        """Unrecognized titles get the generic style."""
        result = aggregator.aggregate([_page("p1", category="Gardening")])

        assert result[0].icon == DEFAULT_CATALOG.fallback.icon
        assert result[0].description == DEFAULT_CATALOG.fallback.description

    def test__catalog_lookup__is_case_sensitive(self, aggregator: CategoryAggregator) -> None:
        """Lookup uses the exact display title."""
        result = aggregator.aggregate([_page("p1", category="faq")])

        assert result[0].icon == DEFAULT_CATALOG.fallback.icon

    def test__custom_catalog__is_used(self) -> None:
        """A catalog can be injected."""
        catalog = CategoryCatalog(
            {"Labs": CategoryStyle("flask", "Hands-on labs")},
            fallback=CategoryStyle("dot", "Other"),
        )

        result = CategoryAggregator(catalog).aggregate([_page("p1", category="Labs")])

        assert result[0].icon == "flask"
        assert result[0].description == "Hands-on labs"

    def test__link__uses_casefolded_title(self, aggregator: CategoryAggregator) -> None:
        """Links point at the category listing."""
        result = aggregator.aggregate([_page("p1", category="FAQ")])

        assert result[0].link == "/categories/faq"

    def test__to_dict__uses_camel_case(self) -> None:
        """Serialized categories use API field names."""
        category = Category(
            title="FAQ",
            icon="i",
            description="d",
            link="/categories/faq",
            article_count=2,
            read_time=None,
        )

        assert category.to_dict() == {
            "title": "FAQ",
            "icon": "i",
            "description": "d",
            "link": "/categories/faq",
            "articleCount": 2,
            "readTime": None,
        }


class TestParseReadTime:
    """Tests for parse_read_time()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("5", 5),
            (" 7 ", 7),
            ("0", 0),
            ("2.5", None),
            ("", None),
            ("-3", None),
            ("1_000", None),
            ("\uff15", None),
        ],
    )
    def test__values(self, value: str, expected: int | None) -> None:
        """Only non-negative integers count."""
        assert parse_read_time(_page("p1", readTimeMinutes=value)) == expected

    def test__missing_key__returns_none(self) -> None:
        """Unset is distinct from zero."""
        assert parse_read_time(_page("p1")) is None


class TestCategoryCatalog:
    """Tests for CategoryCatalog."""

    def test__source_mapping__is_copied(self) -> None:
        """Mutating the source mapping does not change the catalog."""
        styles = {"A": CategoryStyle("a", "A")}
        catalog = CategoryCatalog(styles, fallback=CategoryStyle("f", "F"))

        styles["B"] = CategoryStyle("b", "B")

        assert catalog.style_for("B").icon == "f"


class TestCategoryCache:
    """Tests for CategoryCache."""

    def test__same_revision__computes_once(self) -> None:
        """Cached categories are reused for the same revision."""
        calls = []

        def supplier() -> list[Page]:
            calls.append(1)
            return [_page("p1", category="FAQ")]

        cache = CategoryCache()
        first = cache.get("r1", supplier)
        second = cache.get("r1", supplier)

        assert first == second
        assert len(calls) == 1

    def test__new_revision__recomputes(self) -> None:
        """A different revision never serves the old result."""
        cache = CategoryCache()
        cache.get("r1", lambda: [_page("p1", category="FAQ")])

        result = cache.get("r2", lambda: [_page("p1", category="Meta")])

        assert [c.title for c in result] == ["Meta"]

    def test__invalidate__forces_recompute(self) -> None:
        """Invalidation drops the cached entry."""
        cache = CategoryCache()
        cache.get("r1", lambda: [_page("p1", category="FAQ")])

        cache.invalidate()
        result = cache.get("r1", lambda: [_page("p1", category="Meta")])

        assert [c.title for c in result] == ["Meta"]

    def test__returned_list__is_a_copy(self) -> None:
        """Callers cannot mutate the cached list."""
        cache = CategoryCache()
        result = cache.get("r1", lambda: [_page("p1", category="FAQ")])
        result.clear()

        assert len(cache.get("r1", lambda: [])) == 1


class TestCategoryPages:
    """Tests for category_pages()."""

    def test__matches_case_insensitively(self) -> None:
        """Category filter ignores case and whitespace."""
        pages = [
            _page("p2", order=2, category="faq"),
            _page("p1", order=1, category="FAQ"),
            _page("p3", order=3, category="Meta"),
        ]

        result = category_pages(pages, " Faq ")

        assert [p.id for p in result] == ["p1", "p2"]

    def test__blank_title__returns_empty(self) -> None:
        """Blank titles match nothing."""
        assert category_pages([_page("p1", category="FAQ")], "  ") == []
