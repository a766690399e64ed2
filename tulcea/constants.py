# tulcea/constants.py
"""
Tulcea Constants and Configuration

This module defines the defaults used throughout the path-measure construction:

LAYER 1: Numerical Constants (Distribution Layer)
- DEFAULT_TOLERANCE: absolute tolerance for total mass and equality checks
- MAX_ENUMERATION: cap on the number of histories enumerated eagerly

LAYER 2: Construction Checks (Projective Layer)
- CONSISTENCY_DEPTH: prefix {0..d} whose subsets are checked at construction
- VALIDATE_DEPTH: number of kernels validated eagerly on every history

LAYER 3: Extension Constants (Diagonal Construction)
- CHAIN_TERMS: truncation of infinite cylinder chains
- DEFAULT_SELECTION: point-selection policy of the diagonal step
"""
from dataclasses import dataclass
from enum import Enum


# =============================================================================
# LAYER 1: Numerical Constants (Distribution Layer)
# =============================================================================

DEFAULT_TOLERANCE = 1e-9
MAX_ENUMERATION = 100_000


# =============================================================================
# LAYER 2: Construction Checks (Projective Layer)
# =============================================================================

# Pairs T ⊆ S ⊆ {0..CONSISTENCY_DEPTH} are checked when a family is built
CONSISTENCY_DEPTH = 2
VALIDATE_DEPTH = 0   # 0 = validate lazily, on every kernel evaluation only


# =============================================================================
# LAYER 3: Extension Constants (Diagonal Construction)
# =============================================================================

CHAIN_TERMS = 12


class SelectionPolicy(Enum):
    """How the diagonal step picks a next coordinate above the threshold."""
    FIRST = "first"      # first support point, in support order
    ARGMAX = "argmax"    # support point with the largest limit value


DEFAULT_SELECTION = SelectionPolicy.FIRST

assert 0 < DEFAULT_TOLERANCE < 1, "tolerance must lie in (0, 1)"
assert CONSISTENCY_DEPTH >= 0 and CHAIN_TERMS >= 1


@dataclass(frozen=True)
class ExtensionConfig:
    """
    Configuration shared by every stage of the construction.

    Attributes:
        tolerance: Absolute tolerance for mass, equality and threshold checks
        selection_policy: Point selection used by the diagonal step
        max_enumeration: Largest product space enumerated eagerly
        consistency_depth: Depth of the construction-time consistency check
        chain_terms: Number of terms read from an infinite cylinder chain
        validate_depth: Number of kernels validated eagerly
    """
    tolerance: float = DEFAULT_TOLERANCE
    selection_policy: SelectionPolicy = DEFAULT_SELECTION
    max_enumeration: int = MAX_ENUMERATION
    consistency_depth: int = CONSISTENCY_DEPTH
    chain_terms: int = CHAIN_TERMS
    validate_depth: int = VALIDATE_DEPTH

    def __post_init__(self):
        if not 0 < self.tolerance < 1:
            raise ValueError(f"tolerance must lie in (0, 1), got {self.tolerance}")
        if self.chain_terms < 1:
            raise ValueError(f"chain_terms must be >= 1, got {self.chain_terms}")
        if self.consistency_depth < 0 or self.validate_depth < 0:
            raise ValueError("check depths must be non-negative")
        if not isinstance(self.selection_policy, SelectionPolicy):
            object.__setattr__(self, "selection_policy",
                               SelectionPolicy(self.selection_policy))


DEFAULT_CONFIG = ExtensionConfig()
