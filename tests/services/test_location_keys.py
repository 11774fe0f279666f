from __future__ import annotations

import pytest

from market_analyzer.services.location_keys import LocationTable, city_key


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Paris, France", "paris"),
        ("  NEW YORK , NY, USA", "new york"),
        ("tokyo", "tokyo"),
        ("", ""),
        (None, ""),
    ],
)
def test_city_key(raw: str | None, expected: str) -> None:
    assert city_key(raw) == expected


def test_location_table_normalizes_keys_and_uses_fallback() -> None:
    table = LocationTable({"Paris, France": 1, "tokyo": 2}, fallback=0)

    assert table.lookup("PARIS") == 1
    assert table.lookup("Tokyo, Japan") == 2
    assert table.lookup("Oslo") == 0
    assert table.lookup(None) == 0
    assert "paris, fr" in table
    assert 42 not in table
    assert sorted(table) == ["paris", "tokyo"]
    assert len(table) == 2
    assert table.fallback == 0


def test_location_table_is_read_only() -> None:
    table = LocationTable({"rome": "x"}, fallback="y")

    with pytest.raises(TypeError):
        table["rome"] = "z"  # type: ignore[index]


def test_location_table_mapping_access_normalizes_raw_keys() -> None:
    table = LocationTable({"Paris": {"apartment": 120}}, fallback={})

    assert "Paris, France" in table
    assert table["Paris, France"] == {"apartment": 120}
    assert table.get("  PARIS , France") == {"apartment": 120}
    assert table.get("Oslo") is None
    with pytest.raises(KeyError):
        table["Oslo"]
