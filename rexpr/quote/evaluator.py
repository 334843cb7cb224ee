"""
Evaluation of expression trees against an explicit context.

Used by quasiquotation to compute the values of escaped sub-trees. The
evaluator understands constants, symbol lookup, quote, grouping, blocks,
assignment inside blocks, if/else and calls to Python callables bound in
the context. Loops and function definitions are not evaluated.

The caller's context is only ever read. The outermost block gets a private
child frame; nested blocks share it, and assignments inside them land there.
"""

import math
import operator
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Union

from ..errors import EvaluationError, MissingArgumentError, RExprError, UnboundSymbolError
from ..parser.ast_nodes import ASTNode, Call, Constant, MissingArg, ParamList, Symbol


class Context:
    """A frame of name bindings chained to an optional parent frame."""

    def __init__(self, bindings: Optional[Mapping[str, Any]] = None,
                 parent: Optional['Context'] = None):
        self.bindings: Dict[str, Any] = dict(bindings or {})
        self.parent = parent

    def lookup(self, name: str) -> Any:
        frame = self
        while frame is not None:
            if name in frame.bindings:
                return frame.bindings[name]
            frame = frame.parent
        raise UnboundSymbolError(name)

    def __contains__(self, name: str) -> bool:
        frame = self
        while frame is not None:
            if name in frame.bindings:
                return True
            frame = frame.parent
        return False

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self.lookup(name)
        except UnboundSymbolError:
            return default

    def child(self, bindings: Optional[Mapping[str, Any]] = None, **kwargs) -> 'Context':
        """New frame on top of this one."""
        merged = dict(bindings or {})
        merged.update(kwargs)
        return Context(merged, parent=self)

    def __repr__(self):
        depth = 0
        frame = self.parent
        while frame is not None:
            depth += 1
            frame = frame.parent
        return f"Context({sorted(self.bindings)}, depth={depth})"


ContextLike = Union[Context, Mapping[str, Any], None]


def as_context(context: ContextLike) -> Context:
    if isinstance(context, Context):
        return context
    return Context(context)


# Constructs that need an evaluation model this evaluator does not have
UNSUPPORTED_FORMS = frozenset(['function', 'for', 'while', 'repeat', 'break', 'next'])


class Evaluator:
    """Evaluates trees to Python values."""

    def evaluate(self, node: ASTNode, context: ContextLike = None) -> Any:
        return self._eval(node, as_context(context), None)

    def _eval(self, node: ASTNode, context: Context, frame: Optional[Context]) -> Any:
        if isinstance(node, Constant):
            return node.value

        if isinstance(node, Symbol):
            return context.lookup(node.name)

        if isinstance(node, MissingArg):
            raise MissingArgumentError("argument is missing, with no default")

        if isinstance(node, ParamList):
            raise EvaluationError("a parameter list cannot be evaluated on its own")

        return self._eval_call(node, context, frame)

    def _eval_call(self, call: Call, context: Context, frame: Optional[Context]) -> Any:
        if isinstance(call.head, Symbol):
            name = call.head.name
            if name == 'quote':
                self._check_arity(call, 1)
                return call.args[0].value
            elif name == '(':
                self._check_arity(call, 1)
                return self._eval(call.args[0].value, context, frame)
            elif name == '{':
                return self._eval_block(call, context, frame)
            elif name in ('<-', '='):
                return self._eval_assign(call, context, frame)
            elif name == '<<-':
                raise EvaluationError("'<<-' would modify an enclosing context")
            elif name == 'if':
                return self._eval_if(call, context, frame)
            elif name in UNSUPPORTED_FORMS:
                raise EvaluationError(f"'{name}' cannot be evaluated here")

        function = self._eval(call.head, context, frame)
        if not callable(function):
            raise EvaluationError(f"attempt to apply non-function {function!r}")

        args = []
        kwargs = {}
        for arg in call.args:
            value = self._eval(arg.value, context, frame)
            if arg.name is None:
                args.append(value)
            else:
                kwargs[arg.name] = value
        try:
            return function(*args, **kwargs)
        except RExprError:
            raise
        except Exception as e:
            name = call.head.name if isinstance(call.head, Symbol) else "function"
            raise EvaluationError(f"error in {name}(): {e}") from e

    @staticmethod
    def _check_arity(call: Call, expected: int):
        if len(call.args) != expected:
            raise EvaluationError(
                f"'{call.head.name}' takes {expected} argument(s), got {len(call.args)}"
            )

    def _eval_block(self, call: Call, context: Context, frame: Optional[Context]) -> Any:
        # nested blocks share the frame of the outermost one
        if frame is None:
            frame = context.child()
        result = None
        for arg in call.args:
            result = self._eval(arg.value, frame, frame)
        return result

    def _eval_assign(self, call: Call, context: Context, frame: Optional[Context]) -> Any:
        self._check_arity(call, 2)
        if frame is None:
            raise EvaluationError("assignment is only allowed inside a block")
        target = call.args[0].value
        if isinstance(target, Constant) and isinstance(target.value, str):
            target = Symbol(target.value)
        if not isinstance(target, Symbol):
            raise EvaluationError("only plain names can be assigned to")
        value = self._eval(call.args[1].value, context, frame)
        frame.bindings[target.name] = value
        return value

    def _eval_if(self, call: Call, context: Context, frame: Optional[Context]) -> Any:
        if len(call.args) not in (2, 3):
            raise EvaluationError(f"'if' takes 2 or 3 arguments, got {len(call.args)}")
        condition = self._eval(call.args[0].value, context, frame)
        if self._is_true(condition):
            return self._eval(call.args[1].value, context, frame)
        if len(call.args) == 3:
            return self._eval(call.args[2].value, context, frame)
        return None

    @staticmethod
    def _is_true(value: Any) -> bool:
        if isinstance(value, (list, tuple)):
            if len(value) != 1:
                raise EvaluationError("the condition has length other than 1")
            value = value[0]
        if value is None:
            raise EvaluationError("argument is of length zero")
        if isinstance(value, float) and value != value:
            raise EvaluationError("missing value where TRUE/FALSE needed")
        if isinstance(value, str):
            raise EvaluationError("argument is not interpretable as logical")
        return bool(value)


# ----------------------------------------------------------------------
# Base bindings


def _flatten(values) -> Iterator[Any]:
    for value in values:
        if isinstance(value, (list, tuple)):
            yield from _flatten(value)
        elif value is not None:
            yield value


def _plus(a, b=None):
    return +a if b is None else a + b


def _minus(a, b=None):
    return -a if b is None else a - b


def _divide(a, b):
    if b == 0:
        if a == 0 or a != a:
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _modulo(a, b):
    if b == 0:
        return math.nan
    return a % b


def _int_divide(a, b):
    if b == 0:
        return _divide(a, b)
    return a // b


def _power(a, b):
    a, b = float(a), float(b)
    try:
        result = a ** b
    except ZeroDivisionError:
        # 0 ^ negative
        return math.copysign(math.inf, a) if b.is_integer() and b % 2 == 1 else math.inf
    except OverflowError:
        return -math.inf if a < 0 and b.is_integer() and b % 2 == 1 else math.inf
    if isinstance(result, complex):
        # negative base, fractional exponent
        return math.nan
    return result


def _c(*values):
    flat = list(_flatten(values))
    return flat[0] if len(flat) == 1 else flat


def _length(value) -> int:
    if value is None:
        return 0
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    return 1


def _as_character(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Symbol):
        return value.name
    return str(value)


def _paste(*values, sep=' '):
    return sep.join(_as_character(v) for v in _flatten(values))


def _paste0(*values):
    return _paste(*values, sep='')


def _list(*values, **named):
    if named and not values:
        return dict(named)
    return list(values) + list(named.values())


def _sum(*values):
    return sum(_flatten(values))


BASE_FUNCTIONS: Dict[str, Callable] = {
    '+': _plus,
    '-': _minus,
    '*': operator.mul,
    '/': _divide,
    '^': _power,
    '%%': _modulo,
    '%/%': _int_divide,
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
    '!': operator.not_,
    '&': lambda a, b: bool(a) and bool(b),
    '&&': lambda a, b: bool(a) and bool(b),
    '|': lambda a, b: bool(a) or bool(b),
    '||': lambda a, b: bool(a) or bool(b),
    'c': _c,
    'list': _list,
    'paste': _paste,
    'paste0': _paste0,
    'length': _length,
    'sum': _sum,
    'as.name': Symbol,
    'as.symbol': Symbol,
}


def base_context(**bindings) -> Context:
    """A context with the base operators and functions, plus bindings."""
    return Context(BASE_FUNCTIONS).child(bindings)


def evaluate(node: ASTNode, context: ContextLike = None) -> Any:
    """Convenience function to evaluate a tree."""
    return Evaluator().evaluate(node, context)
