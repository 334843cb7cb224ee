"""
Tree node definitions for R expressions.

An expression tree is built from five kinds of node: constants, symbols,
the missing-argument marker, calls and parameter lists. Nodes are frozen
dataclasses; equality is structural and ignores source positions.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from ..errors import UnsupportedLiteral


class NodeType(Enum):
    """Closed set of node kinds."""
    CONSTANT = auto()    # 1, 1L, "a", TRUE, NULL
    SYMBOL = auto()      # x
    MISSING = auto()     # the empty argument in function(x) / alist(x = )
    CALL = auto()        # f(a, b = 1)
    PARAM_LIST = auto()  # (x, y = 2) of function(x, y = 2)


ATOMIC_TYPES = (bool, int, float, str, type(None))

# R integers are 32-bit; -2**31 is reserved for NA_integer_
INT_MAX = 2**31 - 1


@dataclass(frozen=True)
class ASTNode:
    """Base class for all tree nodes."""
    node_type: ClassVar[NodeType]
    line: int = field(default=0, compare=False, repr=False, kw_only=True)
    column: int = field(default=0, compare=False, repr=False, kw_only=True)

    def children(self) -> Tuple['ASTNode', ...]:
        """Direct child nodes, in order."""
        return ()


def is_atomic(value: Any) -> bool:
    """True if value can be stored in a Constant."""
    return isinstance(value, ATOMIC_TYPES)


@dataclass(frozen=True, eq=False, repr=False)
class Constant(ASTNode):
    """Self-evaluating atomic literal."""
    value: Any
    node_type: ClassVar[NodeType] = NodeType.CONSTANT

    def __post_init__(self):
        if not is_atomic(self.value):
            raise UnsupportedLiteral(
                f"cannot represent {type(self.value).__name__} value {self.value!r} as a constant"
            )
        if isinstance(self.value, int) and not isinstance(self.value, bool) \
                and abs(self.value) > INT_MAX:
            raise UnsupportedLiteral(f"integer {self.value} is outside the R integer range")

    def _is_nan(self) -> bool:
        return isinstance(self.value, float) and math.isnan(self.value)

    def __eq__(self, other):
        if not isinstance(other, Constant):
            return NotImplemented
        # 1, 1.0 and TRUE are different constants
        if type(self.value) is not type(other.value):
            return False
        if self._is_nan() and other._is_nan():
            return True
        return self.value == other.value

    def __hash__(self):
        if self._is_nan():
            return hash((Constant, float, 'nan'))
        return hash((Constant, type(self.value), self.value))

    def __repr__(self):
        return f"Constant({self.value!r})"


@dataclass(frozen=True, repr=False)
class Symbol(ASTNode):
    """Reference to an identifier."""
    name: str
    node_type: ClassVar[NodeType] = NodeType.SYMBOL

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("symbol name must be a non-empty string")

    def __repr__(self):
        return f"Symbol({self.name!r})"


@dataclass(frozen=True, repr=False)
class MissingArg(ASTNode):
    """The empty symbol: an omitted argument. It has no name and no value."""
    node_type: ClassVar[NodeType] = NodeType.MISSING

    def __repr__(self):
        return "MISSING"


MISSING = MissingArg()


@dataclass(frozen=True)
class Arg:
    """One call argument: an optional name and a value node."""
    name: Optional[str]
    value: ASTNode

    def __post_init__(self):
        if self.name is not None and (not isinstance(self.name, str) or not self.name):
            raise ValueError("argument name must be None or a non-empty string")
        if not isinstance(self.value, ASTNode):
            raise TypeError(f"argument value must be a node, got {type(self.value).__name__}")
        if isinstance(self.value, MissingArg):
            raise ValueError("call arguments cannot hold the missing-argument marker")

    def __repr__(self):
        if self.name is None:
            return repr(self.value)
        return f"{self.name}={self.value!r}"


ArgLike = Union[Arg, ASTNode, Tuple[Optional[str], ASTNode]]


def _as_arg(item: ArgLike) -> Arg:
    if isinstance(item, Arg):
        return item
    if isinstance(item, ASTNode):
        return Arg(None, item)
    if isinstance(item, tuple) and len(item) == 2:
        return Arg(item[0], item[1])
    raise TypeError(f"cannot use {item!r} as a call argument")


@dataclass(frozen=True, repr=False)
class Call(ASTNode):
    """Application of a head node to an ordered sequence of arguments."""
    head: ASTNode
    args: Tuple[Arg, ...] = ()
    node_type: ClassVar[NodeType] = NodeType.CALL

    def __post_init__(self):
        if not isinstance(self.head, ASTNode):
            raise TypeError(f"call head must be a node, got {type(self.head).__name__}")
        if isinstance(self.head, (MissingArg, ParamList)):
            raise ValueError(f"{self.head!r} cannot be the head of a call")
        object.__setattr__(self, 'args', tuple(_as_arg(a) for a in self.args))

    def __repr__(self):
        inner = ", ".join(repr(a) for a in self.args)
        return f"Call({self.head!r}, [{inner}])"

    def children(self) -> Tuple[ASTNode, ...]:
        return (self.head,) + tuple(a.value for a in self.args)

    @property
    def names(self) -> Tuple[Optional[str], ...]:
        return tuple(a.name for a in self.args)

    def is_call_to(self, *names: str) -> bool:
        """True if the head is a symbol with one of the given names."""
        return isinstance(self.head, Symbol) and self.head.name in names

    def positional(self) -> Tuple[ASTNode, ...]:
        """Values of the unnamed arguments, in order."""
        return tuple(a.value for a in self.args if a.name is None)

    def named(self) -> Dict[str, ASTNode]:
        """Named arguments by name; the first wins on repeats."""
        result: Dict[str, ASTNode] = {}
        for a in self.args:
            if a.name is not None and a.name not in result:
                result[a.name] = a.value
        return result

    def get(self, name: str, default: Optional[ASTNode] = None) -> Optional[ASTNode]:
        """Value of the first argument called name."""
        for a in self.args:
            if a.name == name:
                return a.value
        return default

    def _index(self, key: Union[int, str]) -> int:
        if isinstance(key, int):
            if not -len(self.args) <= key < len(self.args):
                raise IndexError(f"call has {len(self.args)} argument(s), no index {key}")
            return key % len(self.args)
        for i, a in enumerate(self.args):
            if a.name == key:
                return i
        raise KeyError(key)

    # Editing never mutates: each method returns a new call that shares
    # every untouched sub-tree with this one.

    def with_head(self, head: ASTNode) -> 'Call':
        return replace(self, head=head)

    def with_args(self, args: List[ArgLike]) -> 'Call':
        return replace(self, args=tuple(args))

    def replace_arg(self, key: Union[int, str], value: ASTNode) -> 'Call':
        """Swap the value of one argument, keeping its name and position."""
        i = self._index(key)
        args = list(self.args)
        args[i] = Arg(args[i].name, value)
        return replace(self, args=tuple(args))

    def add_arg(self, value: ASTNode, name: Optional[str] = None,
                index: Optional[int] = None) -> 'Call':
        args = list(self.args)
        if index is None:
            args.append(Arg(name, value))
        else:
            args.insert(index, Arg(name, value))
        return replace(self, args=tuple(args))

    def remove_arg(self, key: Union[int, str]) -> 'Call':
        i = self._index(key)
        return replace(self, args=self.args[:i] + self.args[i + 1:])


@dataclass(frozen=True)
class Param:
    """One formal parameter; default is MISSING when there is none."""
    name: str
    default: ASTNode = MISSING

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("parameter name must be a non-empty string")
        if not isinstance(self.default, ASTNode):
            raise TypeError(f"parameter default must be a node, got {type(self.default).__name__}")

    @property
    def has_default(self) -> bool:
        return not isinstance(self.default, MissingArg)

    def __repr__(self):
        if not self.has_default:
            return self.name
        return f"{self.name}={self.default!r}"


ParamLike = Union[Param, str, Tuple[str, ASTNode]]


def _as_param(item: ParamLike) -> Param:
    if isinstance(item, Param):
        return item
    if isinstance(item, str):
        return Param(item)
    if isinstance(item, tuple) and len(item) == 2:
        return Param(item[0], item[1])
    raise TypeError(f"cannot use {item!r} as a parameter")


@dataclass(frozen=True, repr=False)
class ParamList(ASTNode):
    """Formal parameters of a function definition."""
    params: Tuple[Param, ...] = ()
    node_type: ClassVar[NodeType] = NodeType.PARAM_LIST

    def __post_init__(self):
        params = tuple(_as_param(p) for p in self.params)
        seen = set()
        for p in params:
            if p.name in seen:
                raise ValueError(f"repeated formal argument '{p.name}'")
            seen.add(p.name)
        object.__setattr__(self, 'params', params)

    def __repr__(self):
        inner = ", ".join(repr(p) for p in self.params)
        return f"ParamList([{inner}])"

    def children(self) -> Tuple[ASTNode, ...]:
        return tuple(p.default for p in self.params)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)

    def with_params(self, params: List[ParamLike]) -> 'ParamList':
        return replace(self, params=tuple(params))


def quote(value: Any) -> ASTNode:
    """
    Turn a Python value into a tree node.

    Nodes are returned unchanged, atomic values become constants and a
    one-element list or tuple stands for its element. Anything else has no
    node form.
    """
    if isinstance(value, ASTNode):
        return value
    if is_atomic(value):
        return Constant(value)
    if isinstance(value, (list, tuple)) and len(value) == 1:
        return quote(value[0])
    if isinstance(value, (list, tuple)):
        raise UnsupportedLiteral(
            f"a sequence of length {len(value)} cannot be a constant; build it with a call such as c(...)"
        )
    raise UnsupportedLiteral(f"cannot represent {type(value).__name__} value {value!r} as a node")
