"""Tests for JSON content store."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from coursenav.core.errors import (
    ContentIndexError,
    CourseNotFoundError,
    ForeignReferenceError,
    RevisionConflictError,
)
from coursenav.core.ordering import CanonicalOrder, ChapterPosition, ModulePosition, apply_order
from coursenav.core.store import ContentStore, compute_revision, dump_index, parse_index
from coursenav.core.toc import build_toc
from coursenav.core.types import CourseId, ModuleId, PageId


class TestContentStoreRead:
    """Tests for reading the content index."""

    def test__missing_file__returns_empty_snapshot(self, tmp_path: Path) -> None:
        """A missing index is an empty index."""
        store = ContentStore(tmp_path / "missing.json")

        snapshot = store.snapshot()

        assert snapshot.pages == ()
        assert snapshot.courses == ()
        assert snapshot.revision == compute_revision(b"")

    def test__pages__carry_module_and_course_fields(self, index_path: Path) -> None:
        """Chapters become pages with denormalized ranks and titles."""
        store = ContentStore(index_path)

        page = store.snapshot().page("defs")

        assert page is not None
        assert page.course_id == "python"
        assert page.module_id == "functions"
        assert page.module_order == 2
        assert page.order == 1
        assert page.course_title == "Python"
        assert page.module_title == "Functions"
        assert page.tags == ("syntax",)
        assert page.get_meta("quickAccess") == "2"

    def test__updated_at__is_parsed(self, index_path: Path) -> None:
        """ISO timestamps become datetimes."""
        page = ContentStore(index_path).snapshot().page("intro")

        assert page is not None
        assert page.updated_at is not None
        assert page.updated_at.year == 2025

    def test__get_pages__filters_by_course(self, index_path: Path) -> None:
        """Pages can be limited to one course."""
        store = ContentStore(index_path)

        assert {p.id for p in store.get_pages("rust")} == {"borrowing"}
        assert len(store.get_pages()) == 5

    def test__get_courses__ordered_by_rank(self, index_path: Path) -> None:
        """Courses are returned in rank order with module ids."""
        courses = ContentStore(index_path).get_courses()

        assert [c.id for c in courses] == ["python", "rust"]
        assert courses[0].module_ids == ("basics", "functions")

    def test__get_modules__includes_modules_without_chapters(self, index_path: Path) -> None:
        """Empty modules are still part of the course."""
        modules = ContentStore(index_path).get_modules("rust")

        assert [m.id for m in modules] == ["ownership", "empty-module"]

    def test__snapshot__is_cached_until_reload(self, index_path: Path) -> None:
        """The file is parsed once until reload()."""
        store = ContentStore(index_path)
        first = store.snapshot()

        index_path.write_text(json.dumps({"courses": []}), encoding="utf-8")
        assert store.snapshot() is first

        store.reload()
        assert store.snapshot().pages == ()

    def test__reload__notifies_listeners(self, index_path: Path) -> None:
        """Refresh listeners run on reload."""
        store = ContentStore(index_path)
        calls: list[str] = []
        store.add_refresh_listener(lambda: calls.append("refresh"))

        store.reload()

        assert calls == ["refresh"]

    def test__invalid_json__raises_content_index_error(self, tmp_path: Path) -> None:
        """Unparseable files are reported."""
        path = tmp_path / "content.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ContentIndexError, match="not valid JSON"):
            ContentStore(path).snapshot()


class TestParseIndex:
    """Tests for parse_index()."""

    def test__non_dict__raises(self) -> None:
        """The document root must be an object."""
        with pytest.raises(ContentIndexError, match="must be a dictionary"):
            parse_index([], "r")

    def test__missing_id__names_location(self, sample_index: dict[str, Any]) -> None:
        """Errors name the offending field."""
        del sample_index["courses"][0]["modules"][1]["chapters"][0]["id"]

        with pytest.raises(ContentIndexError, match=r"courses\[0\]\.modules\[1\]\.chapters\[0\]\.id"):
            parse_index(sample_index, "r")

    def test__non_string_metadata__raises(self, sample_index: dict[str, Any]) -> None:
        """Metadata values must be strings."""
        sample_index["courses"][1]["modules"][0]["chapters"][0]["metadata"]["readTimeMinutes"] = 2

        with pytest.raises(ContentIndexError, match="metadata.readTimeMinutes must be a string"):
            parse_index(sample_index, "r")

    def test__boolean_order__raises(self, sample_index: dict[str, Any]) -> None:
        """Ranks must be integers, not booleans."""
        sample_index["courses"][0]["order"] = True

        with pytest.raises(ContentIndexError, match="order must be an integer"):
            parse_index(sample_index, "r")

    def test__duplicate_page_ids__raise(self, sample_index: dict[str, Any]) -> None:
        """Identifiers are unique across the index."""
        sample_index["courses"][1]["modules"][0]["chapters"][0]["id"] = "intro"

        with pytest.raises(ContentIndexError, match="Duplicate page id: intro"):
            parse_index(sample_index, "r")

    def test__missing_order__defaults_to_position(self) -> None:
        """Ranks default to the position in the file."""
        snapshot = parse_index(
            {"courses": [{"id": "c", "modules": [{"id": "m", "chapters": [{"id": "a"}, {"id": "b"}]}]}]},
            "r",
        )

        assert [(p.id, p.order) for p in snapshot.pages] == [("a", 1), ("b", 2)]

    def test__dump_index__round_trips_structure(self, sample_index: dict[str, Any]) -> None:
        """Dumped documents parse back to the same tree."""
        snapshot = parse_index(sample_index, "r")

        reparsed = parse_index(dump_index(snapshot), "r")

        assert build_toc(reparsed.pages) == build_toc(snapshot.pages)
        assert [m.id for m in reparsed.modules] == ["basics", "functions", "ownership", "empty-module"]


class TestPersistOrder:
    """Tests for ContentStore.persist_order()."""

    def _order(self, store: ContentStore) -> CanonicalOrder:
        snapshot = store.snapshot()
        return apply_order(
            snapshot.pages,
            CourseId("python"),
            [ModulePosition(ModuleId("functions"), 1)],
            [ChapterPosition(PageId("intro"), ModuleId("functions"), 1)],
            modules=snapshot.modules_of("python"),
        )

    def test__writes_new_ranks(self, index_path: Path) -> None:
        """Persisted ranks are visible to new readers."""
        store = ContentStore(index_path)

        store.persist_order("python", self._order(store))

        fresh = ContentStore(index_path)
        sequence = [node.id for node in build_toc(fresh.get_pages("python"))[0].iter_pages()]
        assert sequence == ["intro", "defs", "lambdas", "variables"]
        intro = fresh.snapshot().page("intro")
        assert intro is not None
        assert intro.module_id == "functions"
        assert intro.module_title == "Functions"
        assert intro.module_order == 1

    def test__ranks_are_contiguous_on_disk(self, index_path: Path) -> None:
        """The written file carries ranks 1..N."""
        store = ContentStore(index_path)
        store.persist_order("python", self._order(store))

        data = json.loads(index_path.read_text(encoding="utf-8"))
        python = data["courses"][0]
        assert [m["order"] for m in python["modules"]] == [1, 2]
        for module in python["modules"]:
            assert [c["order"] for c in module["chapters"]] == list(range(1, len(module["chapters"]) + 1))

    def test__other_courses__are_preserved(self, index_path: Path) -> None:
        """Only the edited course changes."""
        store = ContentStore(index_path)
        before = store.snapshot().pages_of("rust")

        after = store.persist_order("python", self._order(store))

        assert after.pages_of("rust") == before
        assert [m.id for m in store.get_modules("rust")] == ["ownership", "empty-module"]

    def test__revision__changes_after_write(self, index_path: Path) -> None:
        """A write produces a new revision."""
        store = ContentStore(index_path)
        before = store.snapshot().revision

        after = store.persist_order("python", self._order(store))

        assert after.revision != before
        assert after.revision == compute_revision(index_path.read_bytes())

    def test__stale_revision__raises_conflict(self, index_path: Path) -> None:
        """Optimistic concurrency rejects stale writers."""
        store = ContentStore(index_path)
        order = self._order(store)
        original = index_path.read_bytes()

        with pytest.raises(RevisionConflictError):
            store.persist_order("python", order, expected_revision="stale")

        assert index_path.read_bytes() == original

    def test__unknown_course__raises_not_found(self, index_path: Path) -> None:
        """Orders for unknown courses are rejected."""
        store = ContentStore(index_path)

        with pytest.raises(CourseNotFoundError):
            store.persist_order("nope", self._order(store))

    def test__order_for_other_course__raises_foreign_reference(self, index_path: Path) -> None:
        """An order naming another course's modules is rejected."""
        store = ContentStore(index_path)

        with pytest.raises(ForeignReferenceError):
            store.persist_order("rust", self._order(store))

    def test__incomplete_order__raises_value_error(self, index_path: Path) -> None:
        """Orders must cover every module and chapter."""
        store = ContentStore(index_path)
        order = self._order(store)
        partial = CanonicalOrder(course_id=order.course_id, modules=order.modules, chapters=order.chapters[:1])

        with pytest.raises(ValueError, match="does not cover"):
            store.persist_order("python", partial)

    def test__write__notifies_listeners(self, index_path: Path) -> None:
        """Refresh listeners run after a write."""
        store = ContentStore(index_path)
        calls: list[str] = []
        store.add_refresh_listener(lambda: calls.append("refresh"))

        store.persist_order("python", self._order(store))

        assert calls == ["refresh"]

    def test__failed_replace__removes_temp_file(self, index_path: Path) -> None:
        """A failed write leaves neither a temp file nor a changed index."""
        store = ContentStore(index_path)
        order = self._order(store)
        before = index_path.read_bytes()

        with patch("coursenav.core.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                store.persist_order("python", order)

        assert index_path.read_bytes() == before
        assert not (index_path.parent / f".{index_path.name}.tmp").exists()
        assert store.snapshot().revision == compute_revision(before)
