"""
Tulcea - Path Measures from History-Dependent Transition Kernels

Builds the unique probability measure on an infinite path space determined by
a sequence of one-step kernels (the Ionescu-Tulcea theorem): finite-range
kernel composition, the projective family of finite-dimensional laws, the
content of cylinder sets, continuity at ∅ by a diagonal construction, and the
resulting kernel from initial states to path measures.
"""

__version__ = "0.1.0"

from .constants import ExtensionConfig, SelectionPolicy, DEFAULT_CONFIG
from .history import History
from .distribution import CoordinateSpace, Distribution
from .kernel import TransitionKernel, KernelSequence
from .composition import Kernel, KernelComposer, compose, identity_kernel, singleton_kernel
from .projective import ProjectiveFamily
from .cylinder import Cylinder, CylinderContent
from .integration import PartialIntegrator
from .extension import ContinuityCertificate, DiagonalPoint, ExtensionEngine
from .measure import PathMeasure, ResultKernel, ionescu_tulcea, trajectory_measure

__all__ = [
    "ExtensionConfig",
    "SelectionPolicy",
    "DEFAULT_CONFIG",
    "History",
    "CoordinateSpace",
    "Distribution",
    "TransitionKernel",
    "KernelSequence",
    "Kernel",
    "KernelComposer",
    "compose",
    "identity_kernel",
    "singleton_kernel",
    "ProjectiveFamily",
    "Cylinder",
    "CylinderContent",
    "PartialIntegrator",
    "ContinuityCertificate",
    "DiagonalPoint",
    "ExtensionEngine",
    "PathMeasure",
    "ResultKernel",
    "ionescu_tulcea",
    "trajectory_measure",
]
