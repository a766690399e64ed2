"""
Path Measure Module

The extended measure on the infinite path space and the result kernel that
packages it.

A PathMeasure is determined by its finite-dimensional projections: project(N)
is the law of the coordinates 0..N, computed forward one kernel at a time
and only as far as queried. Countable additivity on the σ-algebra generated
by cylinders comes from continuity at ∅, which ExtensionEngine establishes;
values on decreasing or increasing limits of cylinders are read off as
limits of contents.

ResultKernel maps an initial history to its PathMeasure. Truncated at any N
it is again a Kernel, so the whole construction can be nested as one step of
a larger composition.
"""

from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Union
import itertools
import logging
import numpy as np

from .composition import Kernel, KernelComposer
from .cylinder import Cylinder
from .distribution import Distribution
from .exceptions import (
    ChainError,
    CylinderError,
    HistoryIndexError,
    IndexRangeError,
    KernelContractError,
    SpaceMismatchError,
)
from .extension import Chain, ContinuityCertificate, ExtensionEngine, materialise_chain
from .history import History
from .kernel import KernelSequence

logger = logging.getLogger(__name__)


class PathMeasure:
    """
    Probability measure on paths, started from a law on histories up to `start`.

    Attributes:
        composer: Compositions of the kernel sequence
        start: Last index fixed by the initial law
    """

    def __init__(self, composer: KernelComposer, start: int, initial: Distribution):
        self.composer = composer
        self.sequence = composer.sequence
        self.start = start
        tol = self.sequence.config.tolerance
        if not initial.is_probability(tol):
            raise KernelContractError(f"Initial law has mass {initial.total_mass():.12g}",
                                      details={"index": "initial"})
        for h in initial.support():
            if not isinstance(h, History) or h.indices != tuple(range(start + 1)):
                raise HistoryIndexError(f"Initial outcome {h!r} is not a history on 0..{start}")
            outside = [i for i, v in h.items() if v not in self.sequence.space(i)]
            if outside:
                raise SpaceMismatchError(
                    f"Initial history {h!r} leaves X(i) at i in {outside}",
                    details={"history": h, "indices": outside},
                )
        self._laws: Dict[int, Distribution] = {start: initial.prune()}

    @property
    def initial(self) -> Distribution:
        return self._laws[self.start]

    # ------------------------------------------------------------------
    # Finite-dimensional projections
    # ------------------------------------------------------------------

    def project(self, n: int) -> Distribution:
        """
        Law of the coordinates 0..n.

        Computed forward from the deepest law already known, so asking for n
        evaluates kernels up to index n - 1 only.
        """
        if n < 0:
            raise IndexRangeError(f"project needs n >= 0, got {n}")
        if n <= self.start:
            return self.initial.map(lambda h: h.restrict_le(n))
        known = max(self._laws)
        law = self._laws[known]
        for k in range(known, n):
            def forward(h: History, k: int = k) -> Distribution:
                return self.sequence.step(k, h).map(lambda v: h.extend(k + 1, v))
            law = law.bind(forward)
            self._laws[k + 1] = law
        return self._laws[n]

    truncate = project

    @staticmethod
    def project_distribution(law: Distribution, n: int) -> Distribution:
        """Restrict a law on histories to the coordinates 0..n."""
        return law.map(lambda h: h.restrict_le(n))

    # ------------------------------------------------------------------
    # Measure of cylinders and their limits
    # ------------------------------------------------------------------

    def measure(self, cylinder: Cylinder) -> float:
        if cylinder.is_empty:
            return 0.0
        if not cylinder.indices:
            return 1.0
        return self.project(cylinder.max_index).prob(cylinder.contains)

    def measure_decreasing(self, chain: Chain, terms: Optional[int] = None) -> float:
        """Measure of ⋂ A(n) for a decreasing chain, by continuity from above."""
        terms = terms or self.sequence.config.chain_terms
        cylinders = materialise_chain(chain, self.sequence, terms)
        return float(min(self.measure(c) for c in cylinders))

    def measure_increasing(self, chain: Chain, terms: Optional[int] = None) -> float:
        """Measure of ⋃ A(n) for an increasing chain, by continuity from below."""
        terms = terms or self.sequence.config.chain_terms
        cylinders = [chain(n) for n in range(terms)] if callable(chain) else list(chain)
        if not cylinders:
            raise ChainError("Cylinder chain is empty")
        for n in range(len(cylinders) - 1):
            if not cylinders[n].is_subset(cylinders[n + 1], self.sequence):
                raise ChainError(f"Chain is not increasing at n={n}", details={"n": n})
        return float(max(self.measure(c) for c in cylinders))

    def measure_disjoint_union(self, cylinders: Union[Sequence[Cylinder], Callable[[int], Cylinder]],
                               terms: Optional[int] = None) -> float:
        """
        Measure of a countable disjoint union, as the sum of the terms read.

        Raises:
            CylinderError: if two of the cylinders intersect
        """
        terms = terms or self.sequence.config.chain_terms
        parts = [cylinders(n) for n in range(terms)] if callable(cylinders) else list(cylinders)
        for (i, a), (j, b) in itertools.combinations(enumerate(parts), 2):
            if not a.is_disjoint(b, self.sequence):
                raise CylinderError(f"Cylinders {i} and {j} are not disjoint", details={"pair": (i, j)})
        return float(np.sum([self.measure(c) for c in parts]))

    def integrate(self, f: Callable[[History], float], depth: int) -> float:
        """Integral of a function of the coordinates 0..depth."""
        return self.project(depth).expectation(f)

    # ------------------------------------------------------------------
    # Continuity and sampling
    # ------------------------------------------------------------------

    def engine(self) -> ExtensionEngine:
        return ExtensionEngine(self.composer, self.start, self.initial, self.sequence.config)

    def certify_continuity(self, chain: Chain, assume_empty_intersection: bool = False) -> ContinuityCertificate:
        return self.engine().certify(chain, assume_empty_intersection)

    def sample(self, rng: np.random.Generator, depth: int) -> History:
        """Draw the coordinates 0..depth of one path."""
        h = self.initial.sample(rng)
        for k in range(self.start, depth):
            h = h.extend(k + 1, self.sequence.step(k, h).sample(rng))
        return h.restrict_le(depth)

    def sample_path(self, rng: np.random.Generator) -> Iterator[Any]:
        """Lazily draw one path, coordinate by coordinate."""
        h = self.initial.sample(rng)
        for i in range(self.start + 1):
            yield h[i]
        for k in itertools.count(self.start):
            if self.sequence.length is not None and k >= self.sequence.length:
                return
            v = self.sequence.step(k, h).sample(rng)
            h = h.extend(k + 1, v)
            yield v

    def __repr__(self) -> str:
        return f"PathMeasure(start={self.start}, projected_to={max(self._laws)})"


class ResultKernel:
    """
    The Ionescu-Tulcea kernel: initial history ↦ PathMeasure.

    Attributes:
        composer: Compositions of the kernel sequence
        start: Index of the last coordinate of the initial history
    """

    def __init__(self, sequence: Union[KernelSequence, KernelComposer], start: int = 0):
        self.composer = sequence if isinstance(sequence, KernelComposer) else KernelComposer(sequence)
        self.sequence = self.composer.sequence
        if start < 0:
            raise IndexRangeError(f"start must be >= 0, got {start}")
        self.start = start
        self._measures: Dict[History, PathMeasure] = {}

    def _history(self, x: Any) -> History:
        if isinstance(x, History):
            return x.restrict_le(self.start)
        if self.start != 0:
            raise HistoryIndexError(f"A kernel started at {self.start} needs a History, got {x!r}")
        if x not in self.sequence.root:
            raise SpaceMismatchError(f"{x!r} is not a point of X(0)", details={"value": x})
        return History({0: x})

    def __call__(self, x: Any) -> PathMeasure:
        h = self._history(x)
        measure = self._measures.get(h)
        if measure is None:
            measure = PathMeasure(self.composer, self.start, Distribution.dirac(h))
            self._measures[h] = measure
        return measure

    def with_initial(self, law: Distribution) -> PathMeasure:
        """The path measure mixed over an initial law on values (start 0) or histories."""
        return PathMeasure(self.composer, self.start, law.map(self._history))

    def as_kernel(self, n: int) -> Kernel:
        """The measure truncated at n, as an extension kernel start → n."""
        if n < self.start:
            raise IndexRangeError(f"Cannot truncate a kernel started at {self.start} to {n}")
        extension = tuple(range(self.start + 1, n + 1))

        def fn(x: History) -> Distribution:
            return self(x).project(n).map(lambda h: h.restrict(extension))

        return Kernel(self.start, n, fn, name=f"result[{self.start}->{n}]")

    def check_projection(self, x: Any, n: int) -> bool:
        """project(result(x), n) == partial_trajectory(start, n)(x)."""
        h = self._history(x)
        direct = self.composer.partial_trajectory(self.start, n)(h)
        return self(h).project(n).isclose(direct, self.sequence.config.tolerance)

    def check_tower(self, a: int, x: Any, n: int) -> bool:
        """Running to a, then restarting the construction at a, gives the same law."""
        if a < self.start:
            raise IndexRangeError(f"Restart index {a} precedes start {self.start}")
        h = self._history(x)
        later = ResultKernel(self.composer, a)
        mixed = self.composer.partial_trajectory(self.start, a)(h).bind(lambda g: later(g).project(n))
        return self(h).project(n).isclose(mixed, self.sequence.config.tolerance)

    def check_measurability(self, depth: int) -> bool:
        """
        Every initial history gets a probability law at depth `depth`.

        All spaces are finite and discrete, so every map out of them is
        measurable; what remains to check is that x ↦ result(x) is a
        probability kernel on the enumerated initial histories.
        """
        tol = self.sequence.config.tolerance
        for h in self.sequence.histories(self.start):
            if not self(h).project(depth).is_probability(tol):
                logger.warning("result kernel is not a probability kernel at %r", h)
                return False
        return True


def ionescu_tulcea(sequence: KernelSequence, start: int = 0) -> ResultKernel:
    """The result kernel of a kernel sequence, started at `start`."""
    return ResultKernel(sequence, start)


def trajectory_measure(sequence: KernelSequence, initial: Any) -> PathMeasure:
    """The path measure started from a value or a law on X(0)."""
    law = initial if isinstance(initial, Distribution) else Distribution.dirac(initial)
    return ResultKernel(sequence).with_initial(law)
