"""
Transition Kernel Module

One-step transition kernels κ(n): History(n) → Distribution(X(n+1)) and the
lazily materialised sequence n ↦ κ(n) they form.

Every evaluation is checked against the probability-kernel contract, so a
malformed kernel is rejected at the first history on which it misbehaves,
before any content or extension is computed from it.
"""

from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union
import itertools
import logging

from .constants import DEFAULT_CONFIG, ExtensionConfig
from .distribution import CoordinateSpace, Distribution
from .exceptions import (
    EmptyCoordinateSpaceError,
    EnumerationLimitError,
    IndexRangeError,
    KernelContractError,
    SpaceMismatchError,
)
from .history import History

logger = logging.getLogger(__name__)

KernelOutput = Union[Distribution, Mapping[Any, float]]


class TransitionKernel:
    """
    A single probabilistic step from the history up to n to coordinate n+1.

    Attributes:
        index: The step index n
        target: The coordinate space X(n+1)
        name: Label used in error messages
    """

    def __init__(self, index: int, target: CoordinateSpace,
                 fn: Callable[[History], KernelOutput], name: Optional[str] = None):
        if index < 0:
            raise IndexRangeError(f"Kernel index must be >= 0, got {index}")
        if target.index != index + 1:
            raise SpaceMismatchError(
                f"Kernel {index} must target X({index + 1}), got X({target.index})",
                details={"index": index, "target_index": target.index},
            )
        self.index = index
        self.target = target
        self.name = name or f"kappa_{index}"
        self._fn = fn

    @classmethod
    def markov(cls, index: int, target: CoordinateSpace,
               fn: Callable[[Any], KernelOutput], name: Optional[str] = None) -> "TransitionKernel":
        """Kernel that only looks at the current coordinate x(n)."""
        return cls(index, target, lambda h: fn(h[index]), name=name)

    @classmethod
    def constant(cls, index: int, target: CoordinateSpace,
                 law: KernelOutput, name: Optional[str] = None) -> "TransitionKernel":
        """Kernel ignoring the history entirely (independent coordinates)."""
        return cls(index, target, lambda h: law, name=name)

    def evaluate(self, history: History, atol: float = DEFAULT_CONFIG.tolerance) -> Distribution:
        """
        Evaluate the kernel and enforce the probability-kernel contract.

        Args:
            history: A history containing at least the indices 0..n
            atol: Tolerance on the total mass

        Returns:
            Distribution over X(n+1)

        Raises:
            KernelContractError: mass ≠ 1, negative weights, or support
                outside X(n+1)
        """
        prefix = history.restrict_le(self.index)
        out = self._fn(prefix)
        law = out if isinstance(out, Distribution) else Distribution.from_mapping(out)
        details = {"index": self.index, "kernel": self.name, "history": prefix}
        if not law.is_probability(atol):
            logger.warning("kernel %s has mass %.12g at %r", self.name, law.total_mass(), prefix)
            raise KernelContractError(
                f"Kernel {self.name} (index {self.index}) is not a probability kernel: "
                f"mass {law.total_mass():.12g} at {prefix!r}",
                details=details,
            )
        outside = [v for v in law.support() if v not in self.target]
        if outside:
            logger.warning("kernel %s puts mass outside X(%d): %r", self.name, self.index + 1, outside)
            raise KernelContractError(
                f"Kernel {self.name} (index {self.index}) puts mass on {outside!r}, "
                f"outside X({self.index + 1})",
                details=details,
            )
        return law.prune()

    def __call__(self, history: History) -> Distribution:
        return self.evaluate(history)

    def __repr__(self) -> str:
        return f"TransitionKernel(index={self.index}, name={self.name!r})"


class KernelSequence:
    """
    The possibly infinite sequence n ↦ κ(n) with its coordinate spaces.

    Kernels are produced on first use by `factory` and memoized, so a query
    touching coordinates up to N never materialises kernels beyond N.
    """

    def __init__(self, root: CoordinateSpace,
                 kernels: Union[Callable[[int], TransitionKernel], Sequence[TransitionKernel]],
                 config: ExtensionConfig = DEFAULT_CONFIG):
        if root.index != 0:
            raise SpaceMismatchError(f"Root space must be X(0), got X({root.index})")
        self.root = root
        self.config = config
        self._kernels: Dict[int, TransitionKernel] = {}
        if callable(kernels):
            self._factory = kernels
            self.length: Optional[int] = None
        else:
            finite = list(kernels)
            self._factory = finite.__getitem__
            self.length = len(finite)
        if config.validate_depth:
            self.validate(config.validate_depth)

    @classmethod
    def homogeneous(cls, values: Sequence[Any], step: Callable[[int, History], KernelOutput],
                    config: ExtensionConfig = DEFAULT_CONFIG) -> "KernelSequence":
        """Sequence on the same finite alphabet at every coordinate."""
        def factory(n: int) -> TransitionKernel:
            return TransitionKernel(n, CoordinateSpace(n + 1, tuple(values)),
                                    lambda h, n=n: step(n, h))
        return cls(CoordinateSpace(0, tuple(values)), factory, config)

    def kernel(self, n: int) -> TransitionKernel:
        """κ(n), materialised on first access."""
        if n < 0 or (self.length is not None and n >= self.length):
            raise IndexRangeError(
                f"No kernel with index {n} (sequence length {self.length})",
                details={"index": n},
            )
        kernel = self._kernels.get(n)
        if kernel is None:
            kernel = self._factory(n)
            if kernel.index != n:
                raise SpaceMismatchError(
                    f"Factory returned kernel with index {kernel.index} at position {n}",
                    details={"index": n, "kernel_index": kernel.index},
                )
            if not kernel.target.values:
                raise EmptyCoordinateSpaceError(f"Kernel {n} targets an empty space")
            logger.debug("materialised kernel %d (%s), |X(%d)| = %d",
                         n, kernel.name, n + 1, len(kernel.target))
            self._kernels[n] = kernel
        return kernel

    def space(self, n: int) -> CoordinateSpace:
        """X(n): the root for n = 0, otherwise the target of κ(n-1)."""
        if n == 0:
            return self.root
        return self.kernel(n - 1).target

    def step(self, n: int, history: History) -> Distribution:
        """Law of coordinate n+1 given the history up to n."""
        return self.kernel(n).evaluate(history, self.config.tolerance)

    def product_size(self, indices: Sequence[int]) -> int:
        size = 1
        for i in indices:
            size *= len(self.space(i))
        return size

    def enumerate(self, indices: Sequence[int]) -> Iterator[History]:
        """
        Enumerate every history on the given indices.

        Raises:
            EnumerationLimitError: the product exceeds config.max_enumeration
        """
        indices = sorted(set(indices))
        size = self.product_size(indices)
        if size > self.config.max_enumeration:
            raise EnumerationLimitError(
                f"Product over {indices} has {size} points, limit is {self.config.max_enumeration}",
                details={"indices": indices, "size": size},
            )
        spaces = [self.space(i).values for i in indices]
        for values in itertools.product(*spaces):
            yield History(dict(zip(indices, values)))

    def histories(self, n: int) -> Iterator[History]:
        """Every History(n)."""
        return self.enumerate(range(n + 1))

    def validate(self, depth: int) -> None:
        """
        Check κ(0..depth-1) on every history they can see.

        Raises:
            KernelContractError: naming the first failing kernel and history
        """
        for n in range(depth):
            count = 0
            for history in self.histories(n):
                self.step(n, history)
                count += 1
            logger.debug("validated kernel %d on %d histories", n, count)

    def check_nonempty(self, depth: int) -> Tuple[int, ...]:
        """
        Derive that X(0..depth) are nonempty from the kernels themselves.

        Starting from a point of X(0), each κ(n) is a probability kernel and
        so puts mass on some point of X(n+1); that point extends the path.

        Returns:
            Sizes of X(0..depth)
        """
        path = History({0: self.root.values[0]})
        for n in range(depth):
            law = self.step(n, path)
            path = path.extend(n + 1, law.support()[0])
        return tuple(len(self.space(i)) for i in range(depth + 1))

    def __repr__(self) -> str:
        return f"KernelSequence(length={self.length}, materialised={sorted(self._kernels)})"
