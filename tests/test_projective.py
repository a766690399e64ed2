"""
Tests for the projective family and the cylinder content
"""

import pytest
from hypothesis import given, settings, strategies as st

from tulcea import (
    Cylinder,
    CylinderContent,
    Distribution,
    History,
    KernelSequence,
    ProjectiveFamily,
)
from tulcea.exceptions import ConsistencyError, CylinderError, IndexRangeError, KernelContractError

from conftest import polya_step, ternary_step


def fair_family(fair_coin):
    return ProjectiveFamily(fair_coin, Distribution.uniform([0, 1]))


class TestProjectiveFamily:
    def test_root_is_dirac(self, polya):
        family = ProjectiveFamily(polya, 1)
        assert family.distribution([0]).outcomes == (History({0: 1}),)

    def test_empty_index_set(self, polya):
        family = ProjectiveFamily(polya, 0)
        law = family.distribution([])
        assert law.outcomes == (History.empty(),)

    def test_distribution_on_gapped_set(self, polya):
        family = ProjectiveFamily(polya, 0)
        law = family.distribution({3, 1})
        assert all(h.indices == (1, 3) for h in law.outcomes)
        assert law.is_probability()

    def test_polya_second_draw(self, polya):
        family = ProjectiveFamily(polya, 0)
        # x0 = 0: P(x1 = 1) = 1/3, then P(x2 = 1 | x1 = 1) = 2/4
        law = family.distribution([1, 2])
        assert law[History({1: 1, 2: 1})] == pytest.approx(1 / 3 * 2 / 4)

    def test_initial_law_checked(self, polya):
        with pytest.raises(KernelContractError):
            ProjectiveFamily(polya, Distribution.from_mapping({0: 0.5}))
        with pytest.raises(KernelContractError):
            ProjectiveFamily(polya, 5)

    def test_subset_required(self, polya):
        family = ProjectiveFamily(polya, 0)
        with pytest.raises(IndexRangeError):
            family.check_consistency([1, 2], [3])

    def test_inconsistent_family_rejected(self, polya):
        class Skewed(ProjectiveFamily):
            def distribution(self, indices):
                if tuple(sorted(set(indices))) == (1,):
                    return Distribution.dirac(History({1: 1}))
                return super().distribution(indices)

        with pytest.raises(ConsistencyError) as info:
            Skewed(polya, 0)
        assert info.value.details["subset"] == (1,)

    @settings(max_examples=40, deadline=None)
    @given(st.sets(st.integers(min_value=0, max_value=5), max_size=4), st.data())
    def test_consistency_property(self, superset, data):
        sequence = KernelSequence.homogeneous((0, 1, 2), ternary_step)
        family = ProjectiveFamily(sequence, Distribution.uniform([0, 1, 2]), check_depth=0)
        subset = data.draw(st.sets(st.sampled_from(sorted(superset)))) if superset else set()
        assert family.check_consistency(superset, subset)


class TestCylinder:
    def test_indices_validated(self):
        with pytest.raises(CylinderError):
            Cylinder((2, 1), frozenset())
        with pytest.raises(CylinderError):
            Cylinder((0, 1), frozenset([(0,)]))

    def test_prefix(self):
        c = Cylinder.prefix([1, 0])
        assert c.contains(History.from_values([1, 0, 1, 1]))
        assert not c.contains(History.from_values([1, 1, 1]))

    def test_lift_is_same_set(self, fair_coin):
        c = Cylinder((1,), frozenset([(1,)]))
        lifted = c.lift([0, 1, 3], fair_coin)
        assert len(lifted.members) == 4
        assert lifted.same_set(c, fair_coin)
        assert lifted != c

    def test_lift_requires_superset(self, fair_coin):
        with pytest.raises(CylinderError):
            Cylinder.prefix([0, 1]).lift([1, 2], fair_coin)

    def test_support_drops_free_indices(self, fair_coin):
        c = Cylinder((1,), frozenset([(0,)])).lift([0, 1, 2], fair_coin)
        assert c.support(fair_coin) == Cylinder((1,), frozenset([(0,)]))

    def test_boolean_ring(self, fair_coin):
        a = Cylinder((0,), frozenset([(1,)]))
        b = Cylinder((1,), frozenset([(1,)]))
        both = a.intersection(b, fair_coin)
        assert both.same_set(Cylinder.prefix([1, 1]), fair_coin)
        either = a.union(b, fair_coin)
        assert len(either.members) == 3
        assert a.difference(b, fair_coin).same_set(Cylinder.prefix([1, 0]), fair_coin)
        assert a.complement(fair_coin).same_set(Cylinder.prefix([0]), fair_coin)
        assert both.is_subset(a, fair_coin)
        assert not a.is_subset(both, fair_coin)

    def test_from_predicate(self, ternary):
        c = Cylinder.from_predicate([0, 2], ternary, lambda h: h[0] == h[2])
        assert len(c.members) == 3


class TestCylinderContent:
    def test_fair_coin_scenario(self, fair_coin):
        content = CylinderContent(fair_family(fair_coin))
        c = Cylinder((0, 1, 2), frozenset([(0, 1, 0)]))
        assert content(c) == pytest.approx(0.125)

    @pytest.mark.parametrize("prefix", [[1], [0, 1], [1, 1, 0, 1], [0, 0, 0, 0, 0, 1]])
    def test_fair_coin_prefix(self, fair_coin, prefix):
        content = CylinderContent(fair_family(fair_coin))
        assert content(Cylinder.prefix(prefix)) == pytest.approx(2.0 ** -len(prefix))

    def test_independent_of_representation(self, polya):
        content = CylinderContent(ProjectiveFamily(polya, 0))
        c = Cylinder((2,), frozenset([(1,)]))
        for superset in ([0, 2], [1, 2], [2, 3], [0, 1, 2, 4]):
            assert content(c.lift(superset, polya)) == pytest.approx(content(c))

    def test_full_and_empty(self, polya):
        content = CylinderContent(ProjectiveFamily(polya, 0))
        assert content(Cylinder.full()) == pytest.approx(1.0)
        assert content(Cylinder.empty()) == 0.0

    def test_finite_additivity(self, polya):
        content = CylinderContent(ProjectiveFamily(polya, 0))
        a = Cylinder.prefix([0, 1])
        b = Cylinder((1, 3), frozenset([(0, 0), (0, 1)]))
        assert content.is_additive(a, b)
        # x0 = 0 surely, so A and B split the whole space by the value of x1
        assert content.content_of_disjoint_union([a, b]) == pytest.approx(1.0)

    def test_overlapping_union_rejected(self, polya):
        content = CylinderContent(ProjectiveFamily(polya, 0))
        with pytest.raises(CylinderError):
            content.content_of_disjoint_union([Cylinder.prefix([0]), Cylinder((1,), frozenset([(1,)]))])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
