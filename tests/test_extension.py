"""
Tests for the extension engine: continuity at ∅ by the diagonal construction
"""

import itertools

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from tulcea import (
    CoordinateSpace,
    Cylinder,
    CylinderContent,
    Distribution,
    ExtensionConfig,
    ExtensionEngine,
    KernelSequence,
    ProjectiveFamily,
    SelectionPolicy,
    TransitionKernel,
)
from tulcea.exceptions import ChainError, ContinuityError, SelectionError

from conftest import polya_step, ternary_step


def ones_prefix(n):
    return Cylinder.prefix([1] * (n + 1))


class TestChains:
    def test_contents_antitone(self, fair_coin):
        engine = ExtensionEngine.from_family(ProjectiveFamily(fair_coin, Distribution.uniform([0, 1])))
        contents = engine.contents([ones_prefix(n) for n in range(5)])
        assert np.allclose(contents, [2.0 ** -(n + 1) for n in range(5)])
        assert np.all(np.diff(contents) <= 0)

    def test_callable_chain_is_truncated(self):
        config = ExtensionConfig(chain_terms=4)
        sequence = KernelSequence.homogeneous((0, 1), lambda n, h: {0: 0.5, 1: 0.5}, config)
        engine = ExtensionEngine.from_family(ProjectiveFamily(sequence, 1))
        assert len(engine.contents(ones_prefix)) == 4
        assert engine.limit_content(ones_prefix) == pytest.approx(2.0 ** -3)

    def test_increasing_chain_rejected(self, fair_coin):
        engine = ExtensionEngine.from_family(ProjectiveFamily(fair_coin, 0))
        with pytest.raises(ChainError):
            engine.contents([Cylinder.prefix([0, 1]), Cylinder.prefix([0])])
        with pytest.raises(ChainError):
            engine.contents([])

    def test_engine_content_matches_cylinder_content(self, polya):
        family = ProjectiveFamily(polya, Distribution.from_mapping({0: 0.25, 1: 0.75}))
        engine = ExtensionEngine.from_family(family)
        content = CylinderContent(family)
        for c in (Cylinder.prefix([1, 0]), Cylinder((2, 4), frozenset([(1, 1), (0, 1)])), Cylinder.full()):
            assert engine.content(c) == pytest.approx(content(c))


class TestDiagonalConstruction:
    def test_witness_follows_the_positive_branch(self, fair_coin):
        engine = ExtensionEngine.from_family(ProjectiveFamily(fair_coin, Distribution.uniform([0, 1])))
        chain = [ones_prefix(n) for n in range(6)]
        certificate = engine.certify(chain)
        assert not certificate.converged
        assert certificate.limit == pytest.approx(2.0 ** -6)
        assert certificate.witness.values == (1,) * 6

    def test_zero_limit_converges(self, alternating):
        # x0 = 0 makes the alternating path 0,1,0,1,... certain
        engine = ExtensionEngine.from_family(ProjectiveFamily(alternating, 0))
        chain = [Cylinder.prefix([0] + [0] * (n + 1)) for n in range(5)]
        certificate = engine.certify(chain, assume_empty_intersection=True)
        assert certificate.converged
        assert certificate.witness is None
        assert np.allclose(certificate.contents, 0.0)

    def test_positive_limit_contradicts_empty_intersection(self, polya):
        engine = ExtensionEngine.from_family(ProjectiveFamily(polya, 0))
        chain = [Cylinder((1,), frozenset([(1,)])), Cylinder.prefix([0, 1, 1])]
        with pytest.raises(ContinuityError) as info:
            engine.certify(chain, assume_empty_intersection=True)
        assert info.value.details["witness"].values == (0, 1, 1)

    def test_diagonal_point_is_lazy_and_memoized(self, polya):
        engine = ExtensionEngine.from_family(ProjectiveFamily(polya, 0))
        point = engine.diagonal_point([Cylinder((2,), frozenset([(1,)]))])
        assert point.depth == -1
        assert point[2] == 1
        assert point.depth == 2
        first = point.prefix(2)
        assert point.prefix(2) == first
        # beyond the chain the construction keeps going
        assert len(list(itertools.islice(iter(point), 6))) == 6

    def test_step_bound_holds_for_every_term(self, ternary):
        family = ProjectiveFamily(ternary, Distribution.uniform([0, 1, 2]))
        engine = ExtensionEngine.from_family(family)
        a = Cylinder.from_predicate([0, 1, 2], ternary, lambda h: h[1] != 2)
        b = a.intersection(Cylinder.from_predicate([3], ternary, lambda h: h[3] == 0), ternary)
        chain = [a, b]
        epsilon = engine.limit_content(chain)
        point = engine.diagonal_point(chain, epsilon)
        z = point.prefix(3)
        for level in range(4):
            for g in point.integrands(level):
                assert g(z) >= epsilon - 1e-9
        assert all(c.contains(z) for c in chain)

    def test_epsilon_above_content_rejected(self, fair_coin):
        engine = ExtensionEngine.from_family(ProjectiveFamily(fair_coin, 0))
        with pytest.raises(SelectionError):
            engine.diagonal_point([Cylinder.prefix([0, 1])], epsilon=0.9)

    @pytest.mark.parametrize("policy,expected", [
        (SelectionPolicy.FIRST, (1, 0, 1)),
        (SelectionPolicy.ARGMAX, (1, 1, 1)),
    ])
    def test_selection_policies(self, policy, expected):
        config = ExtensionConfig(selection_policy=policy)
        sequence = KernelSequence.homogeneous((0, 1), polya_step, config)
        engine = ExtensionEngine.from_family(ProjectiveFamily(sequence, 1))
        # P(x2 = 1 | x1 = 0) = 1/2 and P(x2 = 1 | x1 = 1) = 3/4, both above 1/4
        point = engine.diagonal_point([Cylinder((2,), frozenset([(1,)]))], 0.25)
        assert point.prefix(2).values == expected

    def test_first_policy_takes_first_support_point(self, fair_coin):
        engine = ExtensionEngine.from_family(ProjectiveFamily(fair_coin, Distribution.uniform([0, 1])))
        point = engine.diagonal_point([Cylinder.full()])
        assert point.prefix(3).values == (0, 0, 0, 0)

    def test_nonempty_spaces_are_derived(self, ternary):
        engine = ExtensionEngine.from_family(ProjectiveFamily(ternary, 0))
        assert engine.check_nonempty(2) == (3, 3, 3)

    def test_iteration_stops_at_end_of_finite_sequence(self):
        kernels = [TransitionKernel.constant(n, CoordinateSpace(n + 1, (0, 1)), {0: 0.5, 1: 0.5})
                   for n in range(3)]
        sequence = KernelSequence(CoordinateSpace(0, (0, 1)), kernels)
        engine = ExtensionEngine.from_family(ProjectiveFamily(sequence, 0))
        point = engine.diagonal_point([Cylinder.full()])
        assert list(point) == [0, 0, 0, 0]


@st.composite
def decreasing_chains(draw):
    """Random decreasing cylinder chains over alphabets of size 2 or 3."""
    size = draw(st.integers(min_value=2, max_value=3))
    depth = draw(st.integers(min_value=1, max_value=3))
    alphabet = tuple(range(size))
    points = list(itertools.product(alphabet, repeat=depth + 1))
    length = draw(st.integers(min_value=1, max_value=4))
    chain = []
    current = set(points)
    for _ in range(length):
        keep = draw(st.sets(st.sampled_from(points), max_size=len(points)))
        current = current & keep
        chain.append(Cylinder(tuple(range(depth + 1)), frozenset(current)))
    return alphabet, chain


class TestContinuityProperty:
    @settings(max_examples=40, deadline=None)
    @given(decreasing_chains())
    def test_limit_zero_or_witness_in_every_set(self, drawn):
        alphabet, chain = drawn
        sequence = KernelSequence.homogeneous(alphabet, ternary_step if len(alphabet) == 3 else polya_step)
        family = ProjectiveFamily(sequence, Distribution.uniform(alphabet), check_depth=0)
        engine = ExtensionEngine.from_family(family)
        certificate = engine.certify(chain)
        assert np.all(np.diff(certificate.contents) <= 1e-12)
        if certificate.converged:
            assert certificate.limit <= 1e-9
        else:
            assert all(c.contains(certificate.witness) for c in chain)
            assert certificate.limit > 0

    @settings(max_examples=25, deadline=None)
    @given(decreasing_chains())
    def test_empty_last_set_means_zero_limit(self, drawn):
        alphabet, chain = drawn
        sequence = KernelSequence.homogeneous(alphabet, ternary_step if len(alphabet) == 3 else polya_step)
        engine = ExtensionEngine.from_family(ProjectiveFamily(sequence, Distribution.uniform(alphabet), check_depth=0))
        chain = chain + [Cylinder.empty()]
        assert engine.certify(chain, assume_empty_intersection=True).converged


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
