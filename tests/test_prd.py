"""Tests for the requirement store."""

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from ralph_cli.prd import (
    CATEGORIES,
    DEFAULT_STEP,
    InvalidEntryIndexError,
    PrdEntry,
    PrdFormatError,
    PrdNotFoundError,
    PrdStore,
    filter_incomplete,
    summarize,
)


def make_entry(category: str = "feature", description: str = "Thing", passes: bool = False) -> Dict[str, Any]:
    return {
        "category": category,
        "description": description,
        "steps": ["Check it"],
        "passes": passes,
    }


@pytest.fixture
def prd_path(tmp_path: Path) -> Path:
    path = tmp_path / "prd.json"
    entries = [
        make_entry("feature", "Login form", passes=True),
        make_entry("ui", "Dark mode"),
        make_entry("feature", "Logout button"),
        make_entry("bugfix", "Crash on save", passes=True),
    ]
    path.write_text(json.dumps(entries, indent=2) + "\n")
    return path


class TestPrdEntry:
    """Tests for PrdEntry."""

    def test_empty_steps_get_default_step(self) -> None:
        entry = PrdEntry(category="ui", description="Button", steps=[])
        assert entry.steps == [DEFAULT_STEP]

    def test_from_dict_missing_key(self) -> None:
        with pytest.raises(PrdFormatError, match="description"):
            PrdEntry.from_dict({"category": "ui", "steps": [], "passes": False})

    def test_from_dict_rejects_non_object(self) -> None:
        with pytest.raises(PrdFormatError):
            PrdEntry.from_dict(["not", "an", "object"])  # type: ignore[arg-type]

    def test_to_dict_key_order(self) -> None:
        entry = PrdEntry(category="docs", description="README", steps=["Read it"], passes=True)
        assert list(entry.to_dict().keys()) == ["category", "description", "steps", "passes"]


class TestPrdStore:
    """Tests for PrdStore load/save and mutations."""

    def test_load_preserves_order(self, prd_path: Path) -> None:
        entries = PrdStore(prd_path).load()
        assert [e.description for e in entries] == [
            "Login form", "Dark mode", "Logout button", "Crash on save",
        ]

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PrdNotFoundError, match="ralph init"):
            PrdStore(tmp_path / "prd.json").load()

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "prd.json"
        path.write_text("{not json")
        with pytest.raises(PrdFormatError, match="Invalid JSON"):
            PrdStore(path).load()

    def test_load_requires_array(self, tmp_path: Path) -> None:
        path = tmp_path / "prd.json"
        path.write_text('{"userStories": []}')
        with pytest.raises(PrdFormatError, match="array"):
            PrdStore(path).load()

    def test_save_format(self, tmp_path: Path) -> None:
        path = tmp_path / "prd.json"
        PrdStore(path).save([PrdEntry(category="ui", description="A", steps=["s"])])

        text = path.read_text()
        assert text.endswith("]\n")
        assert text.startswith('[\n  {\n    "category": "ui"')

    def test_add_appends_and_returns_number(self, prd_path: Path) -> None:
        store = PrdStore(prd_path)
        number = store.add(PrdEntry(category="docs", description="Write docs", steps=[]))

        assert number == 5
        entries = store.load()
        assert entries[-1].description == "Write docs"
        assert entries[-1].steps == [DEFAULT_STEP]
        assert entries[-1].passes is False

    def test_toggle_flips_passes(self, prd_path: Path) -> None:
        store = PrdStore(prd_path)
        toggled = store.toggle([2])

        assert toggled[0][0] == 2
        assert toggled[0][1].passes is True
        assert store.load()[1].passes is True

    def test_toggle_twice_restores(self, prd_path: Path) -> None:
        store = PrdStore(prd_path)
        before = [e.passes for e in store.load()]

        store.toggle([3])
        store.toggle([3])

        assert [e.passes for e in store.load()] == before

    def test_toggle_multiple(self, prd_path: Path) -> None:
        store = PrdStore(prd_path)
        store.toggle([1, 2])

        entries = store.load()
        assert entries[0].passes is False
        assert entries[1].passes is True

    @pytest.mark.parametrize("index", [0, 5, -1])
    def test_toggle_out_of_range(self, prd_path: Path, index: int) -> None:
        before = prd_path.read_text()

        with pytest.raises(InvalidEntryIndexError, match="Must be 1-4"):
            PrdStore(prd_path).toggle([1, index])

        assert prd_path.read_text() == before

    def test_toggle_all(self, prd_path: Path) -> None:
        store = PrdStore(prd_path)
        store.toggle_all()
        assert [e.passes for e in store.load()] == [False, True, True, False]

    def test_clean_removes_passing(self, tmp_path: Path) -> None:
        path = tmp_path / "prd.json"
        path.write_text(json.dumps([
            make_entry(description="a", passes=True),
            make_entry(description="b", passes=False),
            make_entry(description="c", passes=True),
        ]))
        store = PrdStore(path)

        assert store.clean() == (2, 1)
        entries = store.load()
        assert [e.to_dict() for e in entries] == [make_entry(description="b", passes=False)]

    def test_clean_nothing_to_remove_leaves_file(self, tmp_path: Path) -> None:
        path = tmp_path / "prd.json"
        original = json.dumps([make_entry()])
        path.write_text(original)

        assert PrdStore(path).clean() == (0, 1)
        assert path.read_text() == original


class TestFiltering:
    """Tests for filter_incomplete."""

    def entries(self) -> List[PrdEntry]:
        return [
            PrdEntry(category="feature", description="f1", passes=True),
            PrdEntry(category="ui", description="u1"),
            PrdEntry(category="feature", description="f2"),
            PrdEntry(category="docs", description="d1"),
            PrdEntry(category="feature", description="f3"),
        ]

    def test_without_category(self) -> None:
        result = filter_incomplete(self.entries())
        assert [e.description for e in result] == ["u1", "f2", "d1", "f3"]

    def test_with_category_keeps_order(self) -> None:
        result = filter_incomplete(self.entries(), "feature")
        assert [e.description for e in result] == ["f2", "f3"]

    def test_category_with_no_matches(self) -> None:
        assert filter_incomplete(self.entries(), "testing") == []

    @pytest.mark.parametrize("category", [None] + CATEGORIES)
    def test_matches_definition(self, category: str) -> None:
        entries = self.entries()
        expected = [
            e for e in entries
            if not e.passes and (category is None or e.category == category)
        ]
        assert filter_incomplete(entries, category) == expected


class TestSummary:
    """Tests for summarize."""

    def test_counts_and_percentage(self) -> None:
        entries = [
            PrdEntry(category="ui", description="a", passes=True),
            PrdEntry(category="feature", description="b"),
            PrdEntry(category="ui", description="c"),
        ]
        summary = summarize(entries)

        assert summary.passing == 1
        assert summary.total == 3
        assert summary.percentage == 33
        assert summary.bar_cells(30) == 10
        assert list(summary.by_category.keys()) == ["ui", "feature"]
        assert summary.by_category["ui"].passing == 1
        assert summary.by_category["ui"].total == 2
        assert [e.description for e in summary.remaining] == ["b", "c"]
        assert not summary.complete

    def test_half_rounds_up(self) -> None:
        entries = [
            PrdEntry(category="ui", description="a", passes=True),
            PrdEntry(category="ui", description="b"),
            PrdEntry(category="ui", description="c"),
            PrdEntry(category="ui", description="d"),
            PrdEntry(category="ui", description="e"),
            PrdEntry(category="ui", description="f"),
            PrdEntry(category="ui", description="g"),
            PrdEntry(category="ui", description="h"),
        ]
        # 1/8 = 12.5%
        assert summarize(entries).percentage == 13

    def test_all_passing(self) -> None:
        summary = summarize([PrdEntry(category="ui", description="a", passes=True)])
        assert summary.complete
        assert summary.percentage == 100
        assert summary.bar_cells(30) == 30

    def test_empty(self) -> None:
        summary = summarize([])
        assert summary.percentage == 0
        assert summary.bar_cells() == 0
        assert not summary.complete
