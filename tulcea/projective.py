"""
Projective Family Module

Finite-dimensional joint distributions for every finite index set S ⊆ ℕ.

distribution(S) is the marginal on S of the law of the first max(S)+1
coordinates, obtained by composing the kernels from the root. Kolmogorov
consistency (marginalising distribution(S) onto T ⊆ S gives distribution(T))
follows from associativity of composition and is checked when the family is
built.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
from itertools import combinations
import logging

from .composition import KernelComposer
from .distribution import Distribution
from .exceptions import ConsistencyError, IndexRangeError, KernelContractError
from .history import History
from .kernel import KernelSequence

logger = logging.getLogger(__name__)


def _index_set(indices: Iterable[int]) -> Tuple[int, ...]:
    result = tuple(sorted(set(indices)))
    if result and result[0] < 0:
        raise IndexRangeError(f"Indices must be non-negative, got {list(result)}")
    return result


def _subsets(indices: Tuple[int, ...]) -> List[Tuple[int, ...]]:
    return [c for r in range(len(indices) + 1) for c in combinations(indices, r)]


class ProjectiveFamily:
    """
    The projective family of a kernel sequence started from an initial law.

    Attributes:
        sequence: The kernel sequence
        composer: Memoized finite-range compositions over the sequence
        initial: Law of the root coordinate X(0)
    """

    def __init__(self, sequence: KernelSequence, initial: Any,
                 composer: Optional[KernelComposer] = None, check_depth: Optional[int] = None):
        self.sequence = sequence
        self.composer = composer or KernelComposer(sequence)
        self.initial = initial if isinstance(initial, Distribution) else Distribution.dirac(initial)
        atol = sequence.config.tolerance
        if not self.initial.is_probability(atol):
            raise KernelContractError(
                f"Initial law has mass {self.initial.total_mass():.12g}",
                details={"index": "initial"},
            )
        outside = [v for v in self.initial.support() if v not in sequence.root]
        if outside:
            raise KernelContractError(
                f"Initial law puts mass on {outside!r}, outside X(0)",
                details={"index": "initial"},
            )
        self._root = self.initial.prune().map(lambda v: History({0: v}))
        self._joint: Dict[int, Distribution] = {}
        depth = sequence.config.consistency_depth if check_depth is None else check_depth
        self.enforce_consistency(depth)

    def joint(self, n: int) -> Distribution:
        """Law of the history up to n."""
        law = self._joint.get(n)
        if law is None:
            trajectory = self.composer.partial_trajectory(0, n)
            law = self._root.bind(trajectory)
            self._joint[n] = law
        return law

    def distribution(self, indices: Iterable[int]) -> Distribution:
        """
        Joint law of the coordinates in a finite index set.

        Args:
            indices: Finite set S of coordinate indices

        Returns:
            Distribution over histories on exactly S; Dirac at the empty
            history for S = ∅
        """
        s = _index_set(indices)
        if not s:
            return Distribution.dirac(History.empty())
        return self.joint(s[-1]).map(lambda h: h.restrict(s))

    @staticmethod
    def marginal(law: Distribution, indices: Iterable[int]) -> Distribution:
        """Pushforward of a law on histories onto a subset of their indices."""
        t = _index_set(indices)
        return law.map(lambda h: h.restrict(t))

    def check_consistency(self, superset: Iterable[int], subset: Iterable[int]) -> bool:
        """
        Kolmogorov consistency for one pair T ⊆ S.

        Returns:
            True if marginal(distribution(S), T) equals distribution(T)
        """
        s, t = _index_set(superset), _index_set(subset)
        if not set(t).issubset(s):
            raise IndexRangeError(f"{list(t)} is not a subset of {list(s)}",
                                  details={"superset": s, "subset": t})
        lhs = self.marginal(self.distribution(s), t)
        return lhs.isclose(self.distribution(t), self.sequence.config.tolerance)

    def enforce_consistency(self, depth: int) -> None:
        """
        Check every pair T ⊆ S ⊆ {0..depth}.

        Raises:
            ConsistencyError: naming the first inconsistent pair
        """
        base = tuple(range(depth + 1))
        checked = 0
        for s in _subsets(base):
            for t in _subsets(s):
                if not self.check_consistency(s, t):
                    raise ConsistencyError(
                        f"Marginal of distribution({list(s)}) onto {list(t)} "
                        f"differs from distribution({list(t)})",
                        details={"superset": s, "subset": t},
                    )
                checked += 1
        logger.debug("projective family consistent on %d pairs up to depth %d", checked, depth)
