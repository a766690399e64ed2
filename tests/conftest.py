"""Shared kernel sequences for the test suite."""

import pytest

from tulcea import Distribution, History, KernelSequence


def fair_coin_step(n, history):
    return {0: 0.5, 1: 0.5}


def alternating_step(n, history):
    return Distribution.dirac((history[n] + 1) % 2)


def polya_step(n, history):
    # urn with one ball of each colour, one ball added per draw
    ones = sum(history.values)
    p = (1 + ones) / (n + 3)
    return {0: 1 - p, 1: p}


def ternary_step(n, history):
    weights = [1 + (sum(history.values) + j + n) % 3 for j in range(3)]
    total = float(sum(weights))
    return {j: w / total for j, w in enumerate(weights)}


@pytest.fixture
def fair_coin():
    return KernelSequence.homogeneous((0, 1), fair_coin_step)


@pytest.fixture
def alternating():
    return KernelSequence.homogeneous((0, 1), alternating_step)


@pytest.fixture
def polya():
    return KernelSequence.homogeneous((0, 1), polya_step)


@pytest.fixture
def ternary():
    return KernelSequence.homogeneous((0, 1, 2), ternary_step)


@pytest.fixture
def root():
    return History({0: 0})
