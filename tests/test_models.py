"""Tests for models.py — document form, catalog parsing, region helpers."""

import random

import pytest

from conftest import make_detail, make_detail_payload, make_pokemon
from models import (
    CapturedPokemon,
    CatalogDetail,
    PokemonMetrics,
    RecommendedPokemon,
    generation_for,
    is_number,
    is_whole_number,
    is_valid_entry,
    parse_timestamp,
    region_for,
    utc_now_iso,
)


# ── Region / generation ──────────────────────────────────

@pytest.mark.parametrize("pid,region,gen", [
    (1, "kanto", "1"),
    (151, "kanto", "1"),
    (152, "johto", "2"),
    (386, "hoenn", "3"),
    (493, "sinnoh", "4"),
    (649, "unova", "5"),
    (700, "kalos", "6"),
    (809, "alola", "7"),
    (905, "galar", "8"),
])
def test_region_ranges(pid, region, gen):
    assert region_for(pid) == region
    assert generation_for(pid) == gen


def test_region_outside_known_ranges_defaults_to_kanto():
    assert region_for(1000) == "kanto"
    assert generation_for(1000) == "1"


# ── Timestamps ───────────────────────────────────────────

def test_utc_now_iso_format():
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert "." in stamp            # millisecond precision
    assert parse_timestamp(stamp) > 0


def test_parse_timestamp_orders_correctly():
    early = parse_timestamp("2024-01-01T00:00:00.000Z")
    late = parse_timestamp("2024-01-02T00:00:00.000Z")
    assert late - early == pytest.approx(86400)


@pytest.mark.parametrize("bad", [None, "", "yesterday", 12345])
def test_parse_timestamp_bad_input_is_zero(bad):
    assert parse_timestamp(bad) == 0.0


# ── Validation ───────────────────────────────────────────

def test_is_number_excludes_bool():
    assert is_number(3)
    assert is_number(2.5)
    assert not is_number(True)
    assert not is_number("3")


def test_is_valid_entry():
    good = {"id": 1, "name": "bulbasaur", "level": 5, "capturedAt": "2024-01-01T00:00:00Z"}
    assert is_valid_entry(good)
    assert not is_valid_entry({**good, "id": "1"})
    assert not is_valid_entry({**good, "level": True})
    assert not is_valid_entry({**good, "capturedAt": None})
    assert not is_valid_entry({k: v for k, v in good.items() if k != "name"})
    assert not is_valid_entry(["not", "a", "dict"])


# ── CapturedPokemon ──────────────────────────────────────

class TestCapturedPokemon:

    def test_document_keys_are_camel_case(self):
        doc = make_pokemon().to_dict()
        assert doc["capturedAt"] == "2024-01-01T00:00:00.000Z"
        assert doc["def"] == 40
        assert doc["baseExperience"] == 112
        assert "defense" not in doc
        assert "captured_at" not in doc

    def test_from_dict_reads_document_form(self):
        p = make_pokemon(id=6, name="charizard", level=36, types=["fire", "flying"])
        restored = CapturedPokemon.from_dict(p.to_dict())
        assert restored == p

    def test_from_dict_lenient_on_optional_fields(self):
        p = CapturedPokemon.from_dict({
            "id": 7, "name": "squirtle", "level": 3, "capturedAt": "x",
            "atk": "strong", "types": ["water", 5], "sprite": None,
        })
        assert p.atk == 0
        assert p.types == ["water"]
        assert p.sprite == ""
        assert p.region is None

    def test_from_dict_rejects_malformed(self):
        with pytest.raises(ValueError):
            CapturedPokemon.from_dict({"id": 7, "name": "squirtle"})

    def test_copy_does_not_share_types(self):
        p = make_pokemon()
        c = p.copy()
        c.types.append("steel")
        assert p.types == ["electric"]

    @pytest.mark.parametrize("field,value", [
        ("atk", 0), ("types", []), ("sprite", ""),
    ])
    def test_needs_backfill(self, field, value):
        assert not make_pokemon().needs_backfill
        assert make_pokemon(**{field: value}).needs_backfill

    def test_from_catalog(self):
        detail = make_detail(id=6, name="charizard", attack=84, defense=78,
                             speed=100, types=("fire", "flying"), base_experience=240)
        p = CapturedPokemon.from_catalog(detail, level=36)
        assert p.id == 6
        assert p.level == 36
        assert (p.atk, p.defense, p.spd) == (84, 78, 100)
        assert p.types == ["fire", "flying"]
        assert p.sprite == "https://img.example/art/6.png"
        assert p.region == "kanto"
        assert p.captured_at == ""

    def test_from_catalog_rolls_level(self):
        rng = random.Random(7)
        for _ in range(50):
            p = CapturedPokemon.from_catalog(make_detail(), rng=rng)
            assert 1 <= p.level <= 100


# ── CatalogDetail ────────────────────────────────────────

class TestCatalogDetail:

    def test_from_api(self):
        d = CatalogDetail.from_api(make_detail_payload())
        assert d.id == 25
        assert d.stat("attack") == 55
        assert d.stat("missing") == 0
        assert d.bst == 35 + 55 + 40 + 50 + 50 + 90
        assert d.type_names == ["electric"]

    def test_types_sorted_by_slot(self):
        payload = make_detail_payload(types=("grass", "poison"))
        payload["types"].reverse()
        assert CatalogDetail.from_api(payload).type_names == ["grass", "poison"]

    def test_sprite_falls_back_to_default(self):
        d = CatalogDetail.from_api(make_detail_payload(artwork=False))
        assert d.sprite == "https://img.example/front/25.png"

    def test_rejects_payload_without_identity(self):
        with pytest.raises(ValueError):
            CatalogDetail.from_api({"name": "missingno"})
        with pytest.raises(ValueError):
            CatalogDetail.from_api(["not", "an", "object"])


# ── Serialized forms ─────────────────────────────────────

def test_recommended_from_detail_and_dict():
    r = RecommendedPokemon.from_detail(make_detail())
    r.level = 80
    assert r.bst == 320
    assert RecommendedPokemon.from_dict(r.to_dict()) == r


def test_metrics_to_dict():
    m = PokemonMetrics(captured_count=1, pokedex_total=10, pokedex_pct=10.0,
                       avg_level=5, favorite_type="fire", total_exp=62,
                       strongest=make_pokemon(name="charmander", atk=52))
    d = m.to_dict()
    assert d["capturedCount"] == 1
    assert d["strongest"] == {"name": "charmander", "atk": 52}
    assert PokemonMetrics().to_dict()["strongest"] is None


@pytest.mark.parametrize("value,expected", [
    (3, True),
    (3.0, True),
    (2.5, False),
    (float("inf"), False),
    (float("nan"), False),
    (True, False),
    ("3", False),
])
def test_is_whole_number(value, expected):
    assert is_whole_number(value) is expected


def test_from_dict_non_finite_optional_fields_default():
    p = CapturedPokemon.from_dict({
        "id": 1, "name": "bulbasaur", "level": 5, "capturedAt": "x",
        "atk": float("inf"), "def": float("nan"),
    })
    assert (p.atk, p.defense) == (0, 0)
