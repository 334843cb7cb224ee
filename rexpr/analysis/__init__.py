"""Static analyses over expression trees."""

from .analyzers import (
    count_nodes, deprecated_token, expr_type, find_assign, find_deprecated_tokens, find_globals,
)
from .passes import AnalysisPass, AssignmentPass, DeprecatedTokenPass, GlobalReferencePass

__all__ = [
    'count_nodes', 'deprecated_token', 'expr_type', 'find_assign', 'find_deprecated_tokens',
    'find_globals', 'AnalysisPass', 'AssignmentPass', 'DeprecatedTokenPass',
    'GlobalReferencePass',
]
