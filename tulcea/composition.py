"""
Kernel Composition Module

Multi-step kernels built from the one-step kernels of a KernelSequence.

A Kernel from `source` to `target` maps a history up to `source` to a
distribution over extensions, i.e. histories on the indices
source+1..target. Composition is a single kernel product followed by a
reindexing of the history, so composing two ranges costs one operation
regardless of their length; the expansion into individual steps happens
lazily when the composed kernel is evaluated.
"""

from typing import Callable, Dict, Optional, Tuple
import logging

from .distribution import Distribution
from .exceptions import IndexRangeError
from .history import History
from .kernel import KernelSequence

logger = logging.getLogger(__name__)


class Kernel:
    """
    A memoized kernel History(≤source) → Distribution(History).

    Attributes:
        source: Largest index the kernel reads
        target: Largest index of its outcomes
        trajectory: False for extension kernels (outcomes on source+1..target),
            True for trajectory kernels (outcomes on 0..target)
        name: Label for logs and repr
    """

    def __init__(self, source: int, target: int, fn: Callable[[History], Distribution],
                 name: Optional[str] = None, trajectory: bool = False):
        self.source = source
        self.target = target
        self.trajectory = trajectory
        self.name = name or f"K[{source}->{target}]"
        self._fn = fn
        self._cache: Dict[History, Distribution] = {}

    def __call__(self, history: History) -> Distribution:
        prefix = history.restrict_le(self.source)
        law = self._cache.get(prefix)
        if law is None:
            law = self._fn(prefix)
            self._cache[prefix] = law
        return law

    def __repr__(self) -> str:
        kind = "trajectory" if self.trajectory else "extension"
        return f"Kernel({self.name}, {kind})"


def identity_kernel(a: int) -> Kernel:
    """The deterministic kernel a → a: Dirac at the empty extension."""
    return Kernel(a, a, lambda x: Distribution.dirac(History.empty()), name=f"id[{a}]")


def singleton_kernel(sequence: KernelSequence, a: int) -> Kernel:
    """κ(a) reindexed as an extension kernel a → a+1 with outcomes {a+1: v}."""
    def fn(x: History) -> Distribution:
        return sequence.step(a, x).map(lambda v: History({a + 1: v}))
    return Kernel(a, a + 1, fn, name=f"kappa[{a}]")


def compose(lo: Kernel, hi: Kernel) -> Kernel:
    """
    Compose extension kernels lo: a → b and hi: b → c into a → c.

    The first kernel extends the history to b, the second reads the combined
    history (prefix plus the new coordinates) and extends it to c; the result
    is the concatenation of both extensions.

    Raises:
        IndexRangeError: if lo.target != hi.source or either is a trajectory kernel
    """
    if lo.trajectory or hi.trajectory:
        raise IndexRangeError("compose expects extension kernels")
    if lo.target != hi.source:
        raise IndexRangeError(
            f"Cannot compose {lo.name} with {hi.name}: {lo.target} != {hi.source}",
            details={"lo": (lo.source, lo.target), "hi": (hi.source, hi.target)},
        )

    def fn(x: History) -> Distribution:
        return lo(x).bind(lambda e: hi(x.update(e)), combine=lambda e, f: e.update(f))

    return Kernel(lo.source, hi.target, fn, name=f"{hi.name}*{lo.name}")


class KernelComposer:
    """
    Memoized finite-range compositions over a kernel sequence.

    compose_range(a, b) is the identity for b = a, κ(a) for b = a+1 and
    compose(compose_range(a, b-1), κ(b-1)) otherwise. Ranges are built
    upward from the longest cached prefix, so the Python stack depth does not
    grow with b - a.
    """

    def __init__(self, sequence: KernelSequence):
        self.sequence = sequence
        self._ranges: Dict[Tuple[int, int], Kernel] = {}
        self._trajectories: Dict[Tuple[int, int], Kernel] = {}

    def compose_range(self, a: int, b: int) -> Kernel:
        """The kernel History(≤a) → Distribution(History on a+1..b)."""
        if a < 0 or a > b:
            raise IndexRangeError(f"compose_range needs 0 <= a <= b, got a={a}, b={b}",
                                  details={"a": a, "b": b})
        cached = self._ranges.get((a, b))
        if cached is not None:
            return cached
        c = b
        while c > a and (a, c) not in self._ranges:
            c -= 1
        current = self._ranges.get((a, c))
        if current is None:
            current = identity_kernel(a)
            self._ranges[(a, a)] = current
        for n in range(c, b):
            step = singleton_kernel(self.sequence, n)
            current = step if n == a else compose(current, step)
            self._ranges[(a, n + 1)] = current
        logger.debug("built compose_range(%d, %d) from cached prefix (%d, %d)", a, b, a, c)
        return current

    def partial_trajectory(self, a: int, b: int) -> Kernel:
        """
        The kernel History(≤a) → Distribution(History(≤b)).

        For b > a the composed extension is appended to the input; for b ≤ a
        the kernel is the deterministic restriction to 0..b.
        """
        if a < 0 or b < 0:
            raise IndexRangeError(f"partial_trajectory needs non-negative indices, got {a}, {b}")
        cached = self._trajectories.get((a, b))
        if cached is not None:
            return cached
        if b <= a:
            kernel = Kernel(a, b, lambda x: Distribution.dirac(x.restrict_le(b)),
                            name=f"restrict[{a}->{b}]", trajectory=True)
        else:
            extension = self.compose_range(a, b)
            kernel = Kernel(a, b, lambda x: extension(x).map(x.update),
                            name=f"traj[{a}->{b}]", trajectory=True)
        self._trajectories[(a, b)] = kernel
        return kernel

    def check_associativity(self, a: int, b: int, c: int, history: History,
                            atol: Optional[float] = None) -> bool:
        """compose_range(a, c) == compose(compose_range(a, b), compose_range(b, c)) at history."""
        if not a <= b <= c:
            raise IndexRangeError(f"associativity needs a <= b <= c, got {a}, {b}, {c}")
        atol = self.sequence.config.tolerance if atol is None else atol
        direct = self.compose_range(a, c)(history)
        chained = compose(self.compose_range(a, b), self.compose_range(b, c))(history)
        return direct.isclose(chained, atol)
