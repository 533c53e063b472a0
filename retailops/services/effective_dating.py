"""
Effective-dated record index
"Latest record with effective_from <= date" lookups, shared by roster
computation and target generation so both resolve history the same way.
Reference: https://docs.python.org/3/library/bisect.html
"""
from bisect import bisect_right
from collections import defaultdict
from datetime import date
from typing import Generic, Hashable, Iterable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class EffectiveDatedIndex(Generic[K, V]):
    """
    Versioned values per key, indexed by effective date

    Records with the same key and date keep the last one added.
    """

    def __init__(self, records: Iterable[tuple[K, date, V]] = ()):
        self._dates: dict[K, list[date]] = defaultdict(list)
        self._values: dict[K, list[V]] = defaultdict(list)
        for key, effective_from, value in records:
            self.add(key, effective_from, value)

    def add(self, key: K, effective_from: date, value: V) -> None:
        dates = self._dates[key]
        values = self._values[key]
        pos = bisect_right(dates, effective_from)
        if pos > 0 and dates[pos - 1] == effective_from:
            values[pos - 1] = value
            return
        dates.insert(pos, effective_from)
        values.insert(pos, value)

    def value_at(self, key: K, on: date, default: Optional[V] = None) -> Optional[V]:
        """Value of the latest record effective on or before the date"""
        dates = self._dates.get(key)
        if not dates:
            return default
        pos = bisect_right(dates, on)
        if pos == 0:
            return default
        return self._values[key][pos - 1]

    def keys(self) -> list[K]:
        return list(self._dates.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._dates
