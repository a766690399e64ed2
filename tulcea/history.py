"""
History Module

Finite partial paths: an immutable ordered map from coordinate index to value.

A History(n) is the history with indices {0, ..., n}. Projections and updates
replace the dependent product types of the measure-theoretic construction and
are validated at run time by index-set membership checks.
"""

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from .exceptions import HistoryIndexError


class History:
    """
    Immutable, hashable map from coordinate index to coordinate value.

    Histories are used as outcomes of distributions, so equality and hashing
    depend only on the (index, value) pairs.
    """

    __slots__ = ("_items", "_map", "_hash")

    def __init__(self, items: Optional[Mapping[int, Any]] = None):
        mapping = dict(items) if items else {}
        for index in mapping:
            if not isinstance(index, int) or index < 0:
                raise HistoryIndexError(f"Coordinate index must be a non-negative int, got {index!r}")
        self._items: Tuple[Tuple[int, Any], ...] = tuple(sorted(mapping.items(), key=lambda kv: kv[0]))
        self._map: Dict[int, Any] = dict(self._items)
        self._hash = hash(self._items)

    @classmethod
    def from_values(cls, values: Sequence[Any], start: int = 0) -> "History":
        """Build the history (values[0], values[1], ...) on indices start, start+1, ..."""
        return cls({start + i: v for i, v in enumerate(values)})

    @classmethod
    def empty(cls) -> "History":
        return cls()

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(i for i, _ in self._items)

    @property
    def values(self) -> Tuple[Any, ...]:
        return tuple(v for _, v in self._items)

    @property
    def max_index(self) -> int:
        """Largest index present, -1 for the empty history."""
        return self._items[-1][0] if self._items else -1

    def is_prefix(self) -> bool:
        """True if the indices are exactly {0, ..., max_index}."""
        return self.indices == tuple(range(len(self._items)))

    def __getitem__(self, index: int) -> Any:
        try:
            return self._map[index]
        except KeyError:
            raise HistoryIndexError(
                f"History has no coordinate {index} (indices {list(self.indices)})",
                details={"index": index},
            ) from None

    def get(self, index: int, default: Any = None) -> Any:
        return self._map.get(index, default)

    def __contains__(self, index: object) -> bool:
        return index in self._map

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> Tuple[Tuple[int, Any], ...]:
        return self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, History):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        inner = ", ".join(f"{i}: {v!r}" for i, v in self._items)
        return f"History({{{inner}}})"

    # ------------------------------------------------------------------
    # Projection and update
    # ------------------------------------------------------------------

    def restrict(self, indices: Iterable[int]) -> "History":
        """
        Project onto an index set.

        Args:
            indices: Indices to keep; every one of them must be present

        Returns:
            History on exactly the given indices
        """
        wanted = set(indices)
        missing = wanted.difference(self._map)
        if missing:
            raise HistoryIndexError(
                f"Cannot restrict to missing coordinates {sorted(missing)}",
                details={"missing": sorted(missing), "indices": list(self.indices)},
            )
        return History({i: self._map[i] for i in wanted})

    def restrict_le(self, n: int) -> "History":
        """Project onto {0, ..., n}; all of these coordinates must be present."""
        return self.restrict(range(n + 1))

    def truncate(self, n: int) -> "History":
        """Drop every coordinate above n, without requiring a full prefix."""
        return History({i: v for i, v in self._items if i <= n})

    def values_on(self, indices: Sequence[int]) -> Tuple[Any, ...]:
        """Values at the given indices, in the given order."""
        return tuple(self[i] for i in indices)

    def update(self, other: "History") -> "History":
        """Overwrite or add every coordinate of `other`."""
        if not other._items:
            return self
        merged = dict(self._map)
        merged.update(other._map)
        return History(merged)

    def update_finset(self, indices: Iterable[int], other: "History") -> "History":
        """Take `other`'s values on `indices`, keep own values elsewhere."""
        return self.update(other.restrict(indices))

    def extend(self, index: int, value: Any) -> "History":
        merged = dict(self._map)
        merged[index] = value
        return History(merged)

    def shift_indices(self, offset: int) -> "History":
        return History({i + offset: v for i, v in self._items})
