"""
Tests for partial integration (kerint)
"""

import pytest

from tulcea import Cylinder, History, KernelComposer, PartialIntegrator, ProjectiveFamily, CylinderContent


def count_ones(h):
    return float(sum(h.values))


class TestKerint:
    def test_noop_when_k_at_least_m(self, polya):
        integrator = PartialIntegrator(KernelComposer(polya))
        assert integrator.kerint(3, 3, count_ones) is count_ones
        assert integrator.kerint(4, 2, count_ones) is count_ones

    def test_fair_coin_expectation(self, fair_coin):
        integrator = PartialIntegrator(KernelComposer(fair_coin))
        g = integrator.kerint(1, 4, count_ones)
        # x0 + x1 = 1, then three fair coins
        assert g(History.from_values([0, 1])) == pytest.approx(2.5)

    def test_keeps_coordinates_outside_range(self, fair_coin):
        integrator = PartialIntegrator(KernelComposer(fair_coin))
        g = integrator.kerint(0, 2, count_ones)
        x = History({0: 1, 1: 0, 2: 0, 5: 1})
        # coordinate 5 is left as it is: 1 + E[x1 + x2] + 1
        assert g(x) == pytest.approx(3.0)

    @pytest.mark.parametrize("k,m,c", [(0, 1, 3), (0, 2, 4), (1, 2, 4), (1, 3, 4)])
    def test_chaining(self, polya, k, m, c):
        integrator = PartialIntegrator(KernelComposer(polya))
        direct = integrator.kerint(k, c, count_ones)
        chained = integrator.kerint(k, m, integrator.kerint(m, c, count_ones))
        for x in polya.histories(k):
            assert direct(x) == pytest.approx(chained(x))

    def test_monotone(self, ternary):
        integrator = PartialIntegrator(KernelComposer(ternary))
        small = lambda h: float(h[3] == 0)
        large = lambda h: float(h[3] in (0, 1))
        g_small = integrator.kerint(1, 3, small)
        g_large = integrator.kerint(1, 3, large)
        for x in ternary.histories(1):
            assert g_small(x) <= g_large(x) + 1e-12

    def test_prefix_integrand_unchanged(self, polya):
        integrator = PartialIntegrator(KernelComposer(polya))
        f = lambda h: float(h[0] + 2 * h[1])
        g = integrator.kerint(1, 4, f)
        for x in polya.histories(1):
            assert g(x) == pytest.approx(f(x))

    def test_prefix_dependence_preserved(self, polya):
        integrator = PartialIntegrator(KernelComposer(polya))
        f = lambda h: float(h[0] * h[2])
        assert integrator.depends_only_on(f, 2, 4)
        assert not integrator.depends_only_on(f, 1, 4)
        g = integrator.kerint(2, 4, f)
        assert integrator.depends_only_on(g, 2, 4)

    def test_content_is_root_integral(self, polya):
        family = ProjectiveFamily(polya, 1)
        integrator = PartialIntegrator(family.composer)
        c = Cylinder((1, 3), frozenset([(1, 0)]))
        g = integrator.kerint(0, c.max_index, c.indicator)
        assert g(History({0: 1})) == pytest.approx(CylinderContent(family)(c))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
