"""Quasiquotation and the evaluator it uses for escaped sub-trees."""

from .evaluator import Context, Evaluator, base_context, evaluate
from .quasiquote import Quasiquoter, has_escapes, quasiquote

__all__ = ['Context', 'Evaluator', 'Quasiquoter', 'base_context', 'evaluate',
           'has_escapes', 'quasiquote']
