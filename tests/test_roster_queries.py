"""Tests for roster_queries.py — recent captures, search, filter, sort, paging."""

from unittest.mock import MagicMock

import pytest

from conftest import make_pokemon
from roster_queries import (
    filter_roster,
    paginate,
    recent_captures,
    search,
    sort_roster,
    storage_stats,
)


@pytest.fixture
def roster():
    return [
        make_pokemon(id=1, name="Bulbasaur", level=5, atk=49, types=["grass", "poison"],
                     captured_at="2024-01-03T00:00:00.000Z", base_experience=64),
        make_pokemon(id=4, name="charmander", level=12, atk=52, types=["fire"],
                     captured_at="2024-01-01T00:00:00.000Z", base_experience=62),
        make_pokemon(id=158, name="totodile", level=8, atk=65, types=["water"],
                     captured_at="2024-01-05T00:00:00.000Z", base_experience=63,
                     region="johto", generation="2"),
        make_pokemon(id=7, name="squirtle", level=30, atk=0, types=["water"],
                     captured_at="2024-01-02T00:00:00.000Z", base_experience=63),
        make_pokemon(id=25, name="pikachu", level=20, atk=55,
                     captured_at="2024-01-04T00:00:00.000Z"),
    ]


# ── Recent captures ──────────────────────────────────────

def test_recent_captures_newest_first(roster):
    assert [p.id for p in recent_captures(roster)] == [158, 25, 1, 7]


def test_recent_captures_limit(roster):
    assert [p.id for p in recent_captures(roster, 2)] == [158, 25]
    assert recent_captures(roster, 0) == []
    assert recent_captures([], 4) == []


# ── Search ───────────────────────────────────────────────

def test_search_name_case_insensitive(roster):
    assert [p.id for p in search(roster, "BULBA")] == [1]


def test_search_type(roster):
    assert [p.id for p in search(roster, "wat")] == [158, 7]


def test_search_blank_returns_all(roster):
    assert search(roster, "   ") == roster


def test_search_does_not_mutate(roster):
    before = list(roster)
    search(roster, "fire")
    assert roster == before


# ── Filter ───────────────────────────────────────────────

class TestFilter:

    def test_no_criteria(self, roster):
        assert filter_roster(roster) == roster

    def test_search_matches_region(self, roster):
        assert [p.id for p in filter_roster(roster, search="joh")] == [158]

    def test_exact_type(self, roster):
        assert [p.id for p in filter_roster(roster, type_="water")] == [158, 7]
        assert filter_roster(roster, type_="wat") == []

    def test_region_and_generation(self, roster):
        assert [p.id for p in filter_roster(roster, region="johto")] == [158]
        assert [p.id for p in filter_roster(roster, generation="1")] == [1, 4, 7, 25]

    def test_combined(self, roster):
        result = filter_roster(roster, search="t", type_="water", region="kanto")
        assert [p.id for p in result] == [7]


# ── Sort ─────────────────────────────────────────────────

class TestSort:

    def test_name_ascending_case_insensitive(self, roster):
        names = [p.name for p in sort_roster(roster, "name", "asc")]
        assert names == ["Bulbasaur", "charmander", "pikachu", "squirtle", "totodile"]

    def test_captured_at_descending(self, roster):
        assert [p.id for p in sort_roster(roster, "captured_at")] == [158, 25, 1, 7, 4]

    def test_numeric_field(self, roster):
        assert [p.atk for p in sort_roster(roster, "atk")] == [65, 55, 52, 49, 0]
        assert [p.level for p in sort_roster(roster, "level", "asc")] == [5, 8, 12, 20, 30]

    def test_unknown_field(self, roster):
        with pytest.raises(ValueError):
            sort_roster(roster, "weight")

    def test_unknown_order(self, roster):
        with pytest.raises(ValueError):
            sort_roster(roster, "level", "sideways")


# ── Paging ───────────────────────────────────────────────

class TestPaginate:

    def test_pages(self, roster):
        page = paginate(roster, page=2, page_size=2)
        assert [p.id for p in page.items] == [158, 7]
        assert (page.page, page.total_pages, page.total) == (2, 3, 5)

    def test_last_partial_page(self, roster):
        assert [p.id for p in paginate(roster, page=3, page_size=2).items] == [25]

    def test_out_of_range_resets(self, roster):
        page = paginate(roster, page=9, page_size=2)
        assert page.page == 1
        assert [p.id for p in page.items] == [1, 4]

    def test_empty(self):
        page = paginate([], page=1)
        assert page.items == []
        assert page.total_pages == 0


# ── Storage stats ────────────────────────────────────────

def test_storage_stats(roster):
    kv = MagicMock()
    kv.usage.return_value = 1234
    kv.is_available.return_value = False
    assert storage_stats(roster, kv) == {
        "captured_count": 5,
        "storage_usage": 1234,
        "storage_available": False,
    }
