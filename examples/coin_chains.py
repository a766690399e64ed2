"""
Coin Chains

The two reference scenarios: a fair coin at every step, and the deterministic
alternation x(n+1) = x(n) + 1 mod 2.
"""

from tulcea import Cylinder, Distribution, KernelSequence, ionescu_tulcea, trajectory_measure


def fair_coin(n, history):
    return {0: 0.5, 1: 0.5}


def alternate(n, history):
    return Distribution.dirac((history[n] + 1) % 2)


def main():
    coins = KernelSequence.homogeneous((0, 1), fair_coin)
    measure = trajectory_measure(coins, Distribution.uniform([0, 1]))
    print("Fair coin")
    print(f"  P(x0, x1, x2 = 0, 1, 0) = {measure.measure(Cylinder((0, 1, 2), frozenset([(0, 1, 0)]))):.4f}")
    for k in range(1, 6):
        print(f"  P(first {k} coordinates are 1) = {measure.measure(Cylinder.prefix([1] * k)):.5f}")

    flips = KernelSequence.homogeneous((0, 1), alternate)
    path = ionescu_tulcea(flips)(0)
    law = path.project(9)
    print("\nDeterministic alternation from 0")
    print(f"  support of x0..x9: {[h.values for h in law.support()]}")
    print(f"  P(prefix 0, 1, 1) = {path.measure(Cylinder.prefix([0, 1, 1])):.1f}")


if __name__ == "__main__":
    main()
