"""Shared helpers for turning free-text locations into lookup keys."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Generic, TypeVar

T = TypeVar("T")


def city_key(location: str | None) -> str:
    """Return the lowercase city part of a 'City, Region' string, or '' when blank."""

    if location is None:
        return ""
    return location.lower().split(",", 1)[0].strip()


class LocationTable(Mapping, Generic[T]):
    """Immutable city-keyed table with a single fallback entry for unknown locations."""

    def __init__(self, entries: Mapping[str, T], *, fallback: T) -> None:
        self._entries: Mapping[str, T] = MappingProxyType({city_key(key): value for key, value in entries.items()})
        self._fallback = fallback

    @property
    def fallback(self) -> T:
        return self._fallback

    def lookup(self, location: str | None) -> T:
        """Resolve a raw location string; unknown cities get the fallback entry."""

        return self._entries.get(city_key(location), self._fallback)

    def __contains__(self, location: object) -> bool:
        if not isinstance(location, str):
            return False
        return city_key(location) in self._entries

    def __getitem__(self, key: str) -> T:
        return self._entries[city_key(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
