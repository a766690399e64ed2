"""
Partial Integration Module

kerint(k, m, f) integrates the coordinates k+1..m of f against the composed
kernel, leaving every other coordinate of its argument as it is:

    kerint(k, m, f)(x) = ∫ f(update(x, k+1..m, z)) d compose_range(k, m)(x|≤k)   k < m
    kerint(k, m, f)    = f                                                      k ≥ m

It is monotone in f, a no-op on integrands that ignore the coordinates
k+1..m, and chains: kerint(k, c, f) = kerint(k, m, kerint(m, c, f)).
"""

from typing import Callable, Dict, Optional
import logging

from .composition import KernelComposer
from .history import History

logger = logging.getLogger(__name__)

Integrand = Callable[[History], float]


class PartialIntegral:
    """The memoized function x ↦ kerint(k, m, f)(x)."""

    def __init__(self, composer: KernelComposer, k: int, m: int, integrand: Integrand):
        self.k = k
        self.m = m
        self.integrand = integrand
        self._kernel = composer.compose_range(k, m)
        self._values: Dict[History, float] = {}

    def __call__(self, x: History) -> float:
        value = self._values.get(x)
        if value is None:
            f = self.integrand
            value = self._kernel(x).expectation(lambda e: f(x.update(e)))
            self._values[x] = value
        return value

    def __repr__(self) -> str:
        return f"PartialIntegral(k={self.k}, m={self.m})"


class PartialIntegrator:
    """Builds partial integrals over the compositions of a kernel sequence."""

    def __init__(self, composer: KernelComposer):
        self.composer = composer
        self.sequence = composer.sequence

    def kerint(self, k: int, m: int, f: Integrand) -> Integrand:
        """
        Integrate out coordinates k+1..m of f.

        Args:
            k: Depth of the conditioning history
            m: Last coordinate integrated out
            f: Bounded function of a history containing indices 0..m

        Returns:
            A function of a history containing at least 0..k; f itself if k ≥ m
        """
        if k >= m:
            return f
        return PartialIntegral(self.composer, k, m, f)

    def depends_only_on(self, f: Integrand, j: int, depth: int,
                        atol: Optional[float] = None) -> bool:
        """
        Whether f, evaluated on histories up to `depth`, only reads indices ≤ j.

        Checked by enumeration: f must agree on histories sharing the prefix 0..j.
        """
        atol = self.sequence.config.tolerance if atol is None else atol
        seen: Dict[History, float] = {}
        for x in self.sequence.histories(depth):
            key = x.restrict_le(min(j, depth))
            value = f(x)
            if key in seen and abs(seen[key] - value) > atol:
                return False
            seen.setdefault(key, value)
        return True
