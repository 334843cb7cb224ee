"""
Quasiquotation: quote a tree but evaluate the parts marked for it.

    .(expr)     evaluate expr and put the result in its place
    ..(expr)    evaluate expr to a sequence and splice its elements into the
                surrounding argument list

Everything else is copied as is. Sub-trees without markers are shared with
the input rather than rebuilt.
"""

from typing import List, Mapping, Optional

from ..errors import MalformedEscape
from ..parser.ast_nodes import ASTNode, Arg, Call, MissingArg, ParamList, Symbol, quote
from ..walker import AnyVisitor, Transformer, walk
from .evaluator import ContextLike, Evaluator, as_context


def _where(node: ASTNode) -> str:
    if node.line:
        return f" (line {node.line}, column {node.column})"
    return ""


class Quasiquoter(Transformer):
    """Rebuilds a tree, replacing escaped sub-trees with their values."""

    def __init__(self, context: ContextLike = None, evaluator: Optional[Evaluator] = None,
                 escape: str = '.', splice: Optional[str] = '..'):
        self.context = as_context(context)
        self.evaluator = evaluator or Evaluator()
        self.escape = escape
        self.splice = splice

    def is_escape(self, node: ASTNode) -> bool:
        # Matched on the head alone so that .() is caught as well
        return isinstance(node, Call) and isinstance(node.head, Symbol) and \
            node.head.name == self.escape

    def is_splice(self, node: ASTNode) -> bool:
        return self.splice is not None and isinstance(node, Call) and \
            isinstance(node.head, Symbol) and node.head.name == self.splice

    def visit_call(self, node: Call) -> ASTNode:
        if self.is_escape(node):
            return self.unquote(node)
        if self.is_splice(node):
            raise MalformedEscape(
                f"{self.splice}() may only be used as a call argument{_where(node)}"
            )
        return super().visit_call(node)

    def transform_head(self, node: Call) -> ASTNode:
        head = self.walk(node.head)
        if isinstance(head, (MissingArg, ParamList)):
            raise MalformedEscape(
                f"{self.escape}() gave {head!r}, which cannot be the head of a call{_where(node.head)}"
            )
        return head

    def check_argument(self, value: ASTNode, where: ASTNode) -> ASTNode:
        if isinstance(value, MissingArg):
            raise MalformedEscape(
                f"the missing argument cannot be inserted as a call argument{_where(where)}"
            )
        return value

    def transform_args(self, node: Call) -> List[Arg]:
        args = []
        for arg in node.args:
            if self.is_splice(arg.value):
                if arg.name is not None:
                    raise MalformedEscape(
                        f"{self.splice}() cannot be given a name ('{arg.name}'){_where(arg.value)}"
                    )
                args.extend(self.splice_args(arg.value))
                continue
            value = self.check_argument(self.walk(arg.value), arg.value)
            args.append(arg if value is arg.value else Arg(arg.name, value))
        return args

    def _operand(self, node: Call, marker: str) -> ASTNode:
        if len(node.args) != 1:
            raise MalformedEscape(
                f"{marker}() takes exactly one argument, got {len(node.args)}{_where(node)}"
            )
        arg = node.args[0]
        if arg.name is not None:
            raise MalformedEscape(
                f"the argument of {marker}() cannot be named ('{arg.name}'){_where(node)}"
            )
        return arg.value

    def unquote(self, node: Call) -> ASTNode:
        value = self.evaluator.evaluate(self._operand(node, self.escape), self.context)
        return quote(value)

    def splice_args(self, node: Call) -> List[Arg]:
        value = self.evaluator.evaluate(self._operand(node, self.splice), self.context)
        if isinstance(value, Mapping):
            return [Arg(str(name), self.check_argument(quote(item), node))
                    for name, item in value.items()]
        if isinstance(value, (list, tuple)):
            return [Arg(None, self.check_argument(quote(item), node)) for item in value]
        if value is None:
            return []
        return [Arg(None, self.check_argument(quote(value), node))]


def quasiquote(node: ASTNode, context: ContextLike = None, evaluator: Optional[Evaluator] = None,
               escape: str = '.', splice: Optional[str] = '..') -> ASTNode:
    """Expand the escape and splice markers in node, evaluating against context."""
    return walk(node, Quasiquoter(context, evaluator, escape, splice))


class _EscapeFinder(AnyVisitor):
    def __init__(self, names):
        self.names = names

    def test_call(self, node: Call) -> bool:
        return node.is_call_to(*self.names)


def has_escapes(node: ASTNode, escape: str = '.', splice: Optional[str] = '..') -> bool:
    """True if node contains an escape or splice marker."""
    names = (escape,) if splice is None else (escape, splice)
    return walk(node, _EscapeFinder(names))
