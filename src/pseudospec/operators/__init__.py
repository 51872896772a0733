"""
Operators: multi-shift triangular solves + column kernels + convergence test.

Public API:
- as_triangular, multishift_trsm, resolvent_gram_apply
- NORM_CAP, cap_estimates, is_converged, find_converged
"""

from .convergence import NORM_CAP, cap_estimates, is_converged, find_converged
from .multishift import as_triangular, multishift_trsm, resolvent_gram_apply

__all__ = [
    "NORM_CAP",
    "cap_estimates",
    "is_converged",
    "find_converged",
    "as_triangular",
    "multishift_trsm",
    "resolvent_gram_apply",
]
