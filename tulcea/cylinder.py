"""
Cylinder Set Module

Cylinder sets of the path space and the finitely additive content they get
from a projective family.

A cylinder is a finite index set S with a set A of value tuples over
∏_{i∈S} X(i); it denotes every path whose restriction to S lies in A. Two
cylinders are compared by lifting both to the union of their index sets, so
representations over different supersets of the true support are equal.
"""

from typing import Any, Callable, FrozenSet, Iterable, Sequence, Tuple
from dataclasses import dataclass, field
import itertools
import logging

from .distribution import CoordinateSpace
from .exceptions import CylinderError
from .history import History
from .projective import ProjectiveFamily

logger = logging.getLogger(__name__)

# Anything with a .space(n) method (a KernelSequence), or a plain callable n ↦ X(n)
Spaces = Any


def _space(spaces: Spaces, index: int) -> CoordinateSpace:
    if hasattr(spaces, "space"):
        return spaces.space(index)
    return spaces(index)


@dataclass(frozen=True)
class Cylinder:
    """
    The cylinder {ω : (ω_i)_{i∈S} ∈ A}.

    Attributes:
        indices: Sorted index set S
        members: The base set A, as tuples aligned with `indices`
    """
    indices: Tuple[int, ...] = field(default_factory=tuple)
    members: FrozenSet[Tuple[Any, ...]] = field(default_factory=frozenset)

    def __post_init__(self):
        indices = tuple(self.indices)
        if len(set(indices)) != len(indices):
            raise CylinderError(f"Repeated cylinder indices {indices}")
        if list(indices) != sorted(indices) or (indices and indices[0] < 0):
            raise CylinderError(f"Cylinder indices must be sorted and non-negative, got {indices}")
        members = frozenset(tuple(m) for m in self.members)
        bad = [m for m in members if len(m) != len(indices)]
        if bad:
            raise CylinderError(
                f"Members {bad[:3]} do not match indices {indices}",
                details={"indices": indices},
            )
        object.__setattr__(self, "indices", indices)
        object.__setattr__(self, "members", members)

    @classmethod
    def from_predicate(cls, indices: Iterable[int], spaces: Spaces,
                       predicate: Callable[[History], bool]) -> "Cylinder":
        """The cylinder over S of all histories on S satisfying `predicate`."""
        s = tuple(sorted(set(indices)))
        values = [_space(spaces, i).values for i in s]
        members = frozenset(
            combo for combo in itertools.product(*values)
            if predicate(History(dict(zip(s, combo))))
        )
        return cls(s, members)

    @classmethod
    def prefix(cls, values: Sequence[Any]) -> "Cylinder":
        """Paths starting with the given values on 0..k-1."""
        return cls(tuple(range(len(values))), frozenset([tuple(values)]))

    @classmethod
    def full(cls) -> "Cylinder":
        return cls((), frozenset([()]))

    @classmethod
    def empty(cls) -> "Cylinder":
        return cls((), frozenset())

    @property
    def max_index(self) -> int:
        """Depth N of the cylinder: the largest constrained index, 0 if none."""
        return self.indices[-1] if self.indices else 0

    @property
    def is_empty(self) -> bool:
        return not self.members

    def contains(self, history: History) -> bool:
        """Membership of a path (or long enough history)."""
        return history.values_on(self.indices) in self.members

    def indicator(self, history: History) -> float:
        return 1.0 if self.contains(history) else 0.0

    # ------------------------------------------------------------------
    # Re-expression over other index sets
    # ------------------------------------------------------------------

    def lift(self, indices: Iterable[int], spaces: Spaces) -> "Cylinder":
        """
        The same set, expressed over a superset S' ⊇ S.

        Raises:
            CylinderError: if `indices` does not contain S
        """
        target = tuple(sorted(set(indices)))
        if not set(self.indices).issubset(target):
            raise CylinderError(f"Cannot lift {self.indices} to non-superset {target}")
        if target == self.indices:
            return self
        extra = [i for i in target if i not in self.indices]
        extra_values = [_space(spaces, i).values for i in extra]
        members = set()
        for member in self.members:
            known = dict(zip(self.indices, member))
            for combo in itertools.product(*extra_values):
                row = dict(known)
                row.update(zip(extra, combo))
                members.add(tuple(row[i] for i in target))
        return Cylinder(target, frozenset(members))

    def _aligned(self, other: "Cylinder", spaces: Spaces) -> Tuple["Cylinder", "Cylinder"]:
        common = set(self.indices).union(other.indices)
        return self.lift(common, spaces), other.lift(common, spaces)

    def support(self, spaces: Spaces) -> "Cylinder":
        """
        The same set over its smallest index set.

        Index i is dropped when membership does not depend on coordinate i.
        """
        current = self
        for i in list(self.indices):
            pos = current.indices.index(i)
            size = len(_space(spaces, i))
            groups: dict = {}
            for member in current.members:
                key = member[:pos] + member[pos + 1:]
                groups.setdefault(key, set()).add(member[pos])
            if all(len(vals) == size for vals in groups.values()):
                rest = tuple(j for j in current.indices if j != i)
                current = Cylinder(rest, frozenset(groups.keys()))
        return current

    # ------------------------------------------------------------------
    # Boolean ring
    # ------------------------------------------------------------------

    def intersection(self, other: "Cylinder", spaces: Spaces) -> "Cylinder":
        a, b = self._aligned(other, spaces)
        return Cylinder(a.indices, a.members & b.members)

    def union(self, other: "Cylinder", spaces: Spaces) -> "Cylinder":
        a, b = self._aligned(other, spaces)
        return Cylinder(a.indices, a.members | b.members)

    def difference(self, other: "Cylinder", spaces: Spaces) -> "Cylinder":
        a, b = self._aligned(other, spaces)
        return Cylinder(a.indices, a.members - b.members)

    def complement(self, spaces: Spaces) -> "Cylinder":
        everything = Cylinder.full().lift(self.indices, spaces)
        return Cylinder(self.indices, everything.members - self.members)

    def is_subset(self, other: "Cylinder", spaces: Spaces) -> bool:
        a, b = self._aligned(other, spaces)
        return a.members <= b.members

    def same_set(self, other: "Cylinder", spaces: Spaces) -> bool:
        """Observational equality, independent of the chosen index sets."""
        a, b = self._aligned(other, spaces)
        return a.members == b.members

    def is_disjoint(self, other: "Cylinder", spaces: Spaces) -> bool:
        return self.intersection(other, spaces).is_empty


class CylinderContent:
    """
    The finitely additive content of cylinder sets.

    content(cylinder(S, A)) = distribution(S)(A). It is well defined because
    the family is projective, and finitely additive on the ring generated by
    cylinders; countable additivity is established by the extension engine.
    """

    def __init__(self, family: ProjectiveFamily):
        self.family = family
        self.spaces = family.sequence

    def content(self, cylinder: Cylinder) -> float:
        if cylinder.is_empty:
            return 0.0
        law = self.family.distribution(cylinder.indices)
        members = cylinder.members
        return law.prob(lambda h: h.values in members)

    __call__ = content

    def content_of_disjoint_union(self, cylinders: Sequence[Cylinder]) -> float:
        """
        Content of a union of pairwise disjoint cylinders, as a sum.

        Raises:
            CylinderError: if two of the cylinders intersect
        """
        for (i, a), (j, b) in itertools.combinations(enumerate(cylinders), 2):
            if not a.is_disjoint(b, self.spaces):
                raise CylinderError(f"Cylinders {i} and {j} are not disjoint",
                                    details={"pair": (i, j)})
        logger.debug("content of disjoint union of %d cylinders", len(cylinders))
        return float(sum(self.content(c) for c in cylinders))

    def is_additive(self, a: Cylinder, b: Cylinder) -> bool:
        """content(A ∪ B) == content(A) + content(B) for disjoint A, B."""
        if not a.is_disjoint(b, self.spaces):
            raise CylinderError("Additivity is only defined for disjoint cylinders")
        union = self.content(a.union(b, self.spaces))
        return abs(union - self.content(a) - self.content(b)) <= self.family.sequence.config.tolerance
