"""
Tulcea Exception Hierarchy

Every failure carries a deterministic error code:

- TU_KERNEL_CONTRACT: a supplied kernel is not a probability kernel
- TU_EMPTY_SPACE: a coordinate space has no points
- TU_SPACE_MISMATCH: consecutive kernels disagree on a coordinate space
- TU_INDEX_RANGE: an index range or index set is invalid for the operation
- TU_HISTORY_INDEX: a history is missing a required coordinate
- TU_ENUMERATION_LIMIT: a product space is too large to enumerate
- TU_CYLINDER: cylinder sets are malformed or not disjoint
- TU_CHAIN: a cylinder chain is not decreasing
- TU_CONSISTENCY: the projective family fails Kolmogorov consistency
- TU_SELECTION: the diagonal step found no point above the threshold
- TU_CONTINUITY: a positive limit content contradicts an empty intersection

Configuration errors are raised before any content is computed. Once a
ResultKernel exists, queries against it raise only usage errors.
"""

from typing import Any, Dict, Optional

__all__ = [
    "TulceaError",
    "KernelContractError",
    "EmptyCoordinateSpaceError",
    "SpaceMismatchError",
    "IndexRangeError",
    "HistoryIndexError",
    "EnumerationLimitError",
    "CylinderError",
    "ChainError",
    "ConsistencyError",
    "SelectionError",
    "ContinuityError",
]


class TulceaError(ValueError):
    """
    Base exception for all path-measure construction errors.

    Attributes:
        code: Deterministic error code (TU_*)
        message: Human-readable error description
        details: Additional context, e.g. the failing kernel index
    """

    code: str = "TU_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error to a dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "details": {k: repr(v) for k, v in self.details.items()},
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class KernelContractError(TulceaError):
    """A transition kernel returned something that is not a probability distribution."""
    code = "TU_KERNEL_CONTRACT"


class EmptyCoordinateSpaceError(TulceaError):
    """A coordinate space X(n) has no points."""
    code = "TU_EMPTY_SPACE"


class SpaceMismatchError(TulceaError):
    """A kernel's index or target space does not fit the sequence it belongs to."""
    code = "TU_SPACE_MISMATCH"


class IndexRangeError(TulceaError):
    code = "TU_INDEX_RANGE"


class HistoryIndexError(TulceaError, KeyError):
    code = "TU_HISTORY_INDEX"

    def __str__(self) -> str:
        return self.message


class EnumerationLimitError(TulceaError):
    code = "TU_ENUMERATION_LIMIT"


class CylinderError(TulceaError):
    code = "TU_CYLINDER"


class ChainError(TulceaError):
    code = "TU_CHAIN"


class ConsistencyError(TulceaError):
    """Marginalising distribution(S) onto T did not give distribution(T)."""
    code = "TU_CONSISTENCY"


class SelectionError(TulceaError):
    """No next coordinate reaches the threshold in the diagonal step."""
    code = "TU_SELECTION"


class ContinuityError(TulceaError):
    code = "TU_CONTINUITY"
