"""
Extension Engine Module

Continuity at ∅ of the cylinder content, by the diagonal point construction.

Given a decreasing chain of cylinders A(0) ⊇ A(1) ⊇ ... with depths N(n) and
indicators χ(n), let ε = lim content(A(n)). At depth k the sequence
n ↦ kerint(k, N(n), χ(n)) is antitone; its limit l(k) satisfies

    ε ≤ kerint(k, N(n), χ(n))(y) for all n   ⟹   ε ≤ ∫ l(k+1)(y ⊕ z) dκ(k)(y)(z)

so some next coordinate z has l(k+1)(y ⊕ z) ≥ ε, and since the sequence is
antitone the same z keeps the bound for every finite n. Repeating this for
k = 0, 1, 2, ... builds a path z with ε ≤ χ(n)(z) for every n. If ε > 0 the
path lies in every A(n), so the intersection is not empty; hence an empty
intersection forces content(A(n)) → 0 and the content extends to a
countably additive measure.

The existence step is made effective by a selection policy: the first
support point reaching the threshold, or the one with the largest limit.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass
import logging
import numpy as np

from .composition import KernelComposer
from .constants import ExtensionConfig, SelectionPolicy
from .cylinder import Cylinder, CylinderContent
from .distribution import Distribution
from .exceptions import ChainError, ContinuityError, IndexRangeError, SelectionError
from .history import History
from .integration import Integrand, PartialIntegrator
from .projective import ProjectiveFamily

logger = logging.getLogger(__name__)

Chain = Union[Sequence[Cylinder], Callable[[int], Cylinder]]


def materialise_chain(chain: Chain, spaces: Any, terms: int) -> List[Cylinder]:
    """
    Read a cylinder chain and check that it decreases.

    Args:
        chain: A finite sequence of cylinders, or n ↦ A(n)
        spaces: Coordinate spaces used to compare cylinders
        terms: Number of terms read from a callable chain

    Raises:
        ChainError: if the chain is empty or A(n+1) ⊄ A(n) for some n
    """
    cylinders = [chain(n) for n in range(terms)] if callable(chain) else list(chain)
    if not cylinders:
        raise ChainError("Cylinder chain is empty")
    for n in range(len(cylinders) - 1):
        if not cylinders[n + 1].is_subset(cylinders[n], spaces):
            raise ChainError(f"Chain is not decreasing at n={n}: A({n + 1}) ⊄ A({n})",
                             details={"n": n})
    return cylinders


@dataclass
class ContinuityCertificate:
    """
    Outcome of checking continuity at ∅ on a decreasing chain.

    Attributes:
        contents: content(A(n)) for every term read
        limit: ε, the limit of the contents
        converged: True if ε is zero within tolerance
        witness: For ε > 0, a path prefix lying in every A(n)
    """
    contents: np.ndarray
    limit: float
    converged: bool
    witness: Optional[History] = None
    depth: int = 0


class DiagonalPoint:
    """
    The path z built coordinate by coordinate by the diagonal step.

    Coordinates are computed on demand in increasing index order and kept in
    an arena; z(k+1) is computed from z(0..k) only.
    """

    def __init__(self, engine: "ExtensionEngine", cylinders: Sequence[Cylinder], epsilon: float):
        self.engine = engine
        self.cylinders = list(cylinders)
        self.epsilon = epsilon
        self._history = History.empty()
        self._depth = engine.start - 1
        self._integrands: Dict[int, List[Integrand]] = {}

    @property
    def depth(self) -> int:
        """Largest index computed so far."""
        return self._depth

    def integrands(self, level: int) -> List[Integrand]:
        """[kerint(level, N(n), χ(n)) for every n], built once per level."""
        found = self._integrands.get(level)
        if found is None:
            integrator = self.engine.integrator
            found = [integrator.kerint(level, c.max_index, c.indicator) for c in self.cylinders]
            self._integrands[level] = found
        return found

    def advance(self) -> History:
        """Compute one more coordinate."""
        k = self._depth
        self._history = self.engine.step(k, self._history, self.epsilon, self.integrands(k + 1))
        self._depth = k + 1
        return self._history

    def prefix(self, n: int) -> History:
        """The history z(0..n)."""
        if n < 0:
            raise IndexRangeError(f"prefix needs n >= 0, got {n}")
        while self._depth < max(n, self.engine.start):
            self.advance()
        return self._history.restrict_le(n)

    def __getitem__(self, index: int) -> Any:
        return self.prefix(index)[index]

    def __iter__(self) -> Iterator[Any]:
        length = self.engine.sequence.length
        n = 0
        # a finite sequence of L kernels has coordinates 0..L
        while length is None or n <= length:
            yield self[n]
            n += 1


class ExtensionEngine:
    """
    Establishes continuity at ∅ of the content of a path measure.

    Attributes:
        composer: Finite-range compositions of the kernel sequence
        start: Index of the last coordinate fixed by the initial law
        initial: Law of the history up to `start`
        config: Tolerance, selection policy and chain truncation
    """

    def __init__(self, composer: KernelComposer, start: int, initial: Distribution,
                 config: Optional[ExtensionConfig] = None):
        self.composer = composer
        self.sequence = composer.sequence
        self.start = start
        self.initial = initial
        self.config = config or composer.sequence.config
        self.integrator = PartialIntegrator(composer)

    @classmethod
    def from_family(cls, family: ProjectiveFamily) -> "ExtensionEngine":
        """Engine for the path measure of a projective family, started at 0."""
        return cls(family.composer, 0, family.joint(0), family.sequence.config)

    # ------------------------------------------------------------------
    # Contents of a chain
    # ------------------------------------------------------------------

    def content(self, cylinder: Cylinder) -> float:
        """∫ kerint(start, N, χ) d(initial): the content of one cylinder."""
        if cylinder.is_empty:
            return 0.0
        g = self.integrator.kerint(self.start, cylinder.max_index, cylinder.indicator)
        return self.initial.expectation(g)

    def contents(self, chain: Chain) -> np.ndarray:
        cylinders = materialise_chain(chain, self.sequence, self.config.chain_terms)
        return np.array([self.content(c) for c in cylinders])

    def limit_content(self, chain: Chain) -> float:
        """ε = lim content(A(n)); the contents are antitone, so this is their minimum."""
        return float(self.contents(chain).min())

    # ------------------------------------------------------------------
    # The diagonal step
    # ------------------------------------------------------------------

    def _candidates(self, k: int, y: History) -> List[Tuple[History, float]]:
        if k == self.start - 1:
            return [(h, w) for h, w in self.initial.items() if w > 0.0]
        law = self.sequence.step(k, y)
        return [(y.extend(k + 1, v), w) for v, w in law.items() if w > 0.0]

    def step(self, k: int, y: History, epsilon: float, integrands: Sequence[Integrand]) -> History:
        """
        Choose coordinate k+1 so the bound ε ≤ kerint(k+1, N(n), χ(n)) holds for all n.

        Args:
            k: Depth of the current history y (start - 1 for the initial choice)
            y: Current history z(0..k)
            epsilon: The threshold ε
            integrands: kerint(k+1, N(n), χ(n)) for every n

        Returns:
            The history z(0..k+1)

        Raises:
            SelectionError: if the integral bound fails or no point reaches it
        """
        tol = self.config.tolerance
        candidates = self._candidates(k, y)
        limits = [min(g(h) for g in integrands) for h, _ in candidates]
        mean = float(np.dot([w for _, w in candidates], limits))
        if mean < epsilon - tol:
            raise SelectionError(
                f"Integral of the limit at depth {k + 1} is {mean:.12g} < ε = {epsilon:.12g}",
                details={"depth": k + 1, "history": y},
            )
        above = [i for i, value in enumerate(limits) if value >= epsilon - tol]
        if not above:
            raise SelectionError(f"No coordinate {k + 1} reaches ε = {epsilon:.12g}",
                                 details={"depth": k + 1, "history": y})
        if self.config.selection_policy is SelectionPolicy.ARGMAX:
            chosen = max(above, key=lambda i: limits[i])
        else:
            chosen = above[0]
        z = candidates[chosen][0]
        # antitone sequence above its limit: the bound holds for every n
        if any(g(z) < epsilon - tol for g in integrands):
            raise SelectionError(f"Selected coordinate {k + 1} loses the bound for some n",
                                 details={"depth": k + 1, "history": z})
        logger.debug("diagonal step %d: chose %r (limit %.6g, mean %.6g)",
                     k + 1, z.get(k + 1), limits[chosen], mean)
        return z

    def diagonal_point(self, chain: Chain, epsilon: Optional[float] = None) -> DiagonalPoint:
        """
        The path built by repeating the diagonal step from the initial law.

        Args:
            chain: Decreasing cylinder chain
            epsilon: Threshold; defaults to the limit content of the chain

        Raises:
            SelectionError: if epsilon exceeds the content of some A(n)
        """
        cylinders = materialise_chain(chain, self.sequence, self.config.chain_terms)
        contents = np.array([self.content(c) for c in cylinders])
        if epsilon is None:
            epsilon = float(contents.min())
        if np.any(contents < epsilon - self.config.tolerance):
            raise SelectionError(f"ε = {epsilon:.12g} exceeds the content of the chain",
                                 details={"contents": contents.tolist()})
        return DiagonalPoint(self, cylinders, epsilon)

    def certify(self, chain: Chain, assume_empty_intersection: bool = False) -> ContinuityCertificate:
        """
        Check continuity at ∅ along a decreasing chain.

        If the limit content is zero the chain converges. Otherwise a path in
        every A(n) is built as a witness that the intersection is not empty.

        Args:
            chain: Decreasing cylinder chain
            assume_empty_intersection: Caller asserts ⋂ A(n) = ∅

        Raises:
            ContinuityError: if the intersection was asserted empty but the
                limit content is positive
        """
        cylinders = materialise_chain(chain, self.sequence, self.config.chain_terms)
        contents = np.array([self.content(c) for c in cylinders])
        epsilon = float(contents.min())
        depth = max(max(c.max_index for c in cylinders), self.start)
        if epsilon <= self.config.tolerance:
            return ContinuityCertificate(contents, epsilon, True, None, depth)
        point = DiagonalPoint(self, cylinders, epsilon)
        witness = point.prefix(depth)
        outside = [n for n, c in enumerate(cylinders) if not c.contains(witness)]
        if outside:
            raise ContinuityError(f"Diagonal point left A(n) for n in {outside}",
                                  details={"witness": witness})
        if assume_empty_intersection:
            raise ContinuityError(
                f"Limit content {epsilon:.12g} > 0 but {witness!r} lies in every A(n)",
                details={"witness": witness, "limit": epsilon},
            )
        logger.debug("chain has positive limit %.6g, witness %r", epsilon, witness)
        return ContinuityCertificate(contents, epsilon, False, witness, depth)

    def check_nonempty(self, depth: int) -> Tuple[int, ...]:
        """Sizes of X(0..depth), each derived nonempty from the kernels."""
        return self.sequence.check_nonempty(depth)
