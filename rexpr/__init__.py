"""
rexpr - R expressions as data.

Parses R source into immutable expression trees, walks and analyses them,
quasiquotes them with .() and ..() escapes, and renders them back to text.
"""

__version__ = "0.1.0"
__author__ = "rexpr Project"

from .errors import (
    EvaluationError, MalformedEscape, MissingArgumentError, RExprError,
    UnboundSymbolError, UnparsableText, UnsupportedLiteral,
)
from .parser.ast_nodes import (
    MISSING, ASTNode, Arg, Call, Constant, MissingArg, NodeType, Param, ParamList, Symbol, quote,
)
from .parser import parse, parse_expr, render, render_all
from .walker import AnyVisitor, Transformer, Visitor, iter_nodes, walk
from .quote import Context, Evaluator, base_context, quasiquote
from .analysis import deprecated_token, expr_type, find_assign, find_globals
from .calls import call, modify_call, standardise_call, sym
from .engine import AnalysisReport, Engine
