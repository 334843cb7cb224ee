"""
Helpers for building and editing calls.

    call('mean', sym('x'), **{'na.rm': True})    ->  mean(x, na.rm = TRUE)
    modify_call(c, trim=0.1)                     ->  mean(x, na.rm = TRUE, trim = 0.1)
    standardise_call(c, params)                  ->  every argument named as matched
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from .parser.ast_nodes import (
    ASTNode, Arg, Call, ParamList, ParamLike, Symbol, quote,
)
from .parser.deparser import render


def sym(name: str) -> Symbol:
    return Symbol(name)


def call(head: Union[str, ASTNode], *args: Any, **kwargs: Any) -> Call:
    """
    Build a call. A string head names a function; argument values are
    converted with quote(), so strings become string constants.
    """
    head_node = Symbol(head) if isinstance(head, str) else quote(head)
    items = [Arg(None, quote(value)) for value in args]
    items += [Arg(name, quote(value)) for name, value in kwargs.items()]
    return Call(head_node, items)


def new_function(params: Union[ParamList, Iterable[ParamLike]], body: Any) -> Call:
    """function(params) body"""
    if not isinstance(params, ParamList):
        params = ParamList(tuple(params))
    return Call(Symbol('function'), [params, quote(body)])


def modify_call(node: Call, **changes: Any) -> Call:
    """
    Set, add or remove named arguments.

    An existing argument keeps its position; a new one is appended. A value
    of None removes the argument; use Constant(None) to pass NULL.
    """
    result = node
    for name, value in changes.items():
        if value is None:
            result = result.with_args([a for a in result.args if a.name != name])
        elif name in result.names:
            result = result.replace_arg(name, quote(value))
        else:
            result = result.add_arg(quote(value), name)
    return result


def _format_arg(arg: Arg) -> str:
    if arg.name is None:
        return render(arg.value)
    return f"{arg.name} = {render(arg.value)}"


def standardise_call(node: Call, params: ParamList) -> Call:
    """
    Match the arguments of node against params the way R does.

    Exact names are matched first, then unique prefixes of the parameters
    before `...`, then the remaining unnamed arguments by position. What is
    left goes to `...` if there is one. The result names every matched
    argument and orders arguments as the parameters are ordered.

    Raises:
        ValueError: an argument matches nothing, or more than one parameter
    """
    formals = list(params.names)
    dots = formals.index('...') if '...' in formals else None
    partial_formals = formals if dots is None else formals[:dots]

    matched: Dict[str, ASTNode] = {}

    # Exact names
    unmatched: List[Arg] = []
    for arg in node.args:
        if arg.name is not None and arg.name != '...' and arg.name in formals:
            if arg.name in matched:
                raise ValueError(
                    f"formal argument '{arg.name}' matched by multiple actual arguments"
                )
            matched[arg.name] = arg.value
        else:
            unmatched.append(arg)

    # Partial names
    remaining: List[Arg] = []
    for arg in unmatched:
        if arg.name is not None:
            candidates = [f for f in partial_formals
                          if f not in matched and f.startswith(arg.name)]
            if len(candidates) > 1:
                raise ValueError(
                    f"argument '{arg.name}' matches multiple formal arguments: "
                    f"{', '.join(candidates)}"
                )
            if candidates:
                matched[candidates[0]] = arg.value
                continue
        remaining.append(arg)

    # Positions
    free = [f for f in partial_formals if f not in matched]
    extra: List[Arg] = []
    for arg in remaining:
        if arg.name is None and free:
            matched[free.pop(0)] = arg.value
        elif dots is not None:
            extra.append(arg)
        else:
            raise ValueError(f"unused argument ({_format_arg(arg)})")

    args: List[Arg] = []
    for name in formals:
        if name == '...':
            args.extend(extra)
        elif name in matched:
            args.append(Arg(name, matched[name]))
    return node.with_args(args)


def call_name(node: ASTNode) -> Optional[str]:
    """Name of the called function, when the head is a plain symbol."""
    if isinstance(node, Call) and isinstance(node.head, Symbol):
        return node.head.name
    return None
