"""
Distribution Module

Finite discrete probability distributions and coordinate spaces.

Distributions carry their outcomes in first-seen order together with a numpy
weight vector. Pushforwards merge outcomes with equal images, and binding a
kernel mixes the kernel's output distributions with the current weights.
"""

from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, field
import numpy as np

from .constants import DEFAULT_TOLERANCE
from .exceptions import EmptyCoordinateSpaceError


@dataclass(frozen=True)
class CoordinateSpace:
    """
    A finite coordinate space X(n).

    Attributes:
        index: Coordinate index n
        values: The points of X(n), in a fixed order
    """
    index: int
    values: Tuple[Hashable, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise EmptyCoordinateSpaceError(
                f"Coordinate space X({self.index}) is empty",
                details={"index": self.index},
            )
        if len(set(self.values)) != len(self.values):
            raise ValueError(f"Coordinate space X({self.index}) has repeated values")

    def __contains__(self, value: object) -> bool:
        return value in self.values

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.values)


Event = Union[Callable[[Any], bool], Iterable[Hashable]]


class Distribution:
    """
    A finite discrete measure on hashable outcomes.

    Probability distributions have total mass 1; intermediate results of
    pushforward and mixing keep whatever mass they are given, so kernel
    contract checks can inspect it.
    """

    __slots__ = ("_outcomes", "_weights", "_index")

    def __init__(self, outcomes: Sequence[Hashable], weights: Sequence[float]):
        merged: Dict[Hashable, float] = {}
        for outcome, weight in zip(outcomes, weights):
            merged[outcome] = merged.get(outcome, 0.0) + float(weight)
        self._outcomes: Tuple[Hashable, ...] = tuple(merged.keys())
        self._weights: np.ndarray = np.asarray(list(merged.values()), dtype=float)
        self._weights.setflags(write=False)
        self._index: Dict[Hashable, int] = {o: i for i, o in enumerate(self._outcomes)}

    @classmethod
    def dirac(cls, outcome: Hashable) -> "Distribution":
        return cls([outcome], [1.0])

    @classmethod
    def from_mapping(cls, probabilities: Mapping[Hashable, float]) -> "Distribution":
        return cls(list(probabilities.keys()), list(probabilities.values()))

    @classmethod
    def uniform(cls, outcomes: Iterable[Hashable]) -> "Distribution":
        outcomes = list(outcomes)
        if not outcomes:
            raise ValueError("uniform distribution needs at least one outcome")
        return cls(outcomes, np.full(len(outcomes), 1.0 / len(outcomes)))

    @property
    def outcomes(self) -> Tuple[Hashable, ...]:
        return self._outcomes

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    def items(self) -> Iterator[Tuple[Hashable, float]]:
        return zip(self._outcomes, self._weights.tolist())

    def __len__(self) -> int:
        return len(self._outcomes)

    def __getitem__(self, outcome: Hashable) -> float:
        i = self._index.get(outcome)
        return 0.0 if i is None else float(self._weights[i])

    def __repr__(self) -> str:
        inner = ", ".join(f"{o!r}: {w:.6g}" for o, w in self.items())
        return f"Distribution({{{inner}}})"

    # ------------------------------------------------------------------
    # Measure and integral
    # ------------------------------------------------------------------

    def total_mass(self) -> float:
        return float(self._weights.sum())

    def is_probability(self, atol: float = DEFAULT_TOLERANCE) -> bool:
        """True if all weights are non-negative and they sum to 1."""
        if np.any(self._weights < -atol):
            return False
        return bool(abs(self.total_mass() - 1.0) <= atol)

    def support(self, atol: float = 0.0) -> Tuple[Hashable, ...]:
        """Outcomes of weight strictly above `atol`."""
        return tuple(o for o, w in self.items() if w > atol)

    def prob(self, event: Event) -> float:
        """
        Measure of an event.

        Args:
            event: A predicate on outcomes, or a collection of outcomes

        Returns:
            Total weight of the outcomes in the event
        """
        if callable(event):
            mask = np.fromiter((bool(event(o)) for o in self._outcomes), dtype=bool,
                               count=len(self._outcomes))
        else:
            members = event if isinstance(event, (set, frozenset)) else set(event)
            mask = np.fromiter((o in members for o in self._outcomes), dtype=bool,
                               count=len(self._outcomes))
        return float(self._weights[mask].sum())

    def expectation(self, f: Callable[[Any], float]) -> float:
        """Integral of f against the distribution."""
        if not self._outcomes:
            return 0.0
        values = np.fromiter((float(f(o)) for o in self._outcomes), dtype=float,
                             count=len(self._outcomes))
        return float(np.dot(self._weights, values))

    # ------------------------------------------------------------------
    # Pushforward and mixing
    # ------------------------------------------------------------------

    def map(self, f: Callable[[Any], Hashable]) -> "Distribution":
        """Pushforward along f; outcomes with equal images are merged."""
        return Distribution([f(o) for o in self._outcomes], self._weights)

    def bind(self, kernel: Callable[[Any], "Distribution"],
             combine: Optional[Callable[[Any, Any], Hashable]] = None) -> "Distribution":
        """
        Mix a kernel over this distribution.

        Args:
            kernel: Maps an outcome x to a distribution over y
            combine: If given, the outcome of the result is combine(x, y)
                (the kernel product); otherwise it is y (the composition)

        Returns:
            The mixture Σₓ p(x) · kernel(x), pushed through combine
        """
        outcomes: List[Hashable] = []
        weights: List[float] = []
        for x, w in self.items():
            if w == 0.0:
                continue
            inner = kernel(x)
            for y, v in inner.items():
                outcomes.append(combine(x, y) if combine is not None else y)
                weights.append(w * v)
        return Distribution(outcomes, weights)

    def prune(self, atol: float = 0.0) -> "Distribution":
        """Drop outcomes of weight at most `atol`."""
        keep = self._weights > atol
        return Distribution([o for o, k in zip(self._outcomes, keep) if k], self._weights[keep])

    def isclose(self, other: "Distribution", atol: float = DEFAULT_TOLERANCE) -> bool:
        """Equality of measures up to `atol` on every outcome of either side."""
        for outcome in set(self._outcomes).union(other._outcomes):
            if abs(self[outcome] - other[outcome]) > atol:
                return False
        return True

    def sample(self, rng: np.random.Generator) -> Hashable:
        """Draw one outcome."""
        p = np.clip(self._weights, 0.0, None)
        return self._outcomes[int(rng.choice(len(self._outcomes), p=p / p.sum()))]
