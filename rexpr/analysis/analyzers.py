"""
Static analyses over expression trees.

Each analysis is a visitor driven by walk():

    deprecated_token  - does the code use a legacy alias such as T or F?
    find_assign       - which names are assigned to?
    find_globals      - which names are read without being bound locally?

None of them evaluates anything.
"""

from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

from ..parser.ast_nodes import ASTNode, Call, Constant, NodeType, ParamList, Symbol
from ..walker import AnyVisitor, SetVisitor, Visitor, count_nodes, walk

LEGACY_ALIASES = ('T', 'F')

# Suggested replacement for each legacy alias
LEGACY_REPLACEMENTS = {'T': 'TRUE', 'F': 'FALSE'}

ASSIGNMENT_OPS = ('<-', '<<-', '=')

# Never reported by find_globals
LANGUAGE_CONSTRUCTS = frozenset([
    '{', '(', 'if', 'for', 'while', 'repeat', 'function', 'break', 'next',
    '<-', '<<-', '=', 'quote', '~', '::', ':::',
])

TYPE_NAMES = {
    NodeType.CONSTANT: 'constant',
    NodeType.SYMBOL: 'symbol',
    NodeType.MISSING: 'missing',
    NodeType.CALL: 'call',
    NodeType.PARAM_LIST: 'pairlist',
}


def expr_type(node: ASTNode) -> str:
    return TYPE_NAMES[node.node_type]


# ----------------------------------------------------------------------
# Legacy aliases


class DeprecatedTokenFinder(AnyVisitor):
    def __init__(self, tokens: Iterable[str] = LEGACY_ALIASES):
        self.tokens = frozenset(tokens)

    def test_symbol(self, node: Symbol) -> bool:
        return node.name in self.tokens


class DeprecatedTokenCollector(Visitor):
    """Every offending symbol, in source order."""

    def __init__(self, tokens: Iterable[str] = LEGACY_ALIASES):
        self.tokens = frozenset(tokens)

    def generic_visit(self, node: ASTNode) -> List[Symbol]:
        return []

    def visit_symbol(self, node: Symbol) -> List[Symbol]:
        return [node] if node.name in self.tokens else []

    def visit_call(self, node: Call) -> List[Symbol]:
        return [s for child in node.children() for s in self.walk(child)]

    def visit_param_list(self, node: ParamList) -> List[Symbol]:
        return [s for child in node.children() for s in self.walk(child)]


def deprecated_token(node: ASTNode, tokens: Iterable[str] = LEGACY_ALIASES) -> bool:
    """True if any symbol in the tree, call heads included, is one of tokens."""
    return walk(node, DeprecatedTokenFinder(tokens))


def find_deprecated_tokens(node: ASTNode, tokens: Iterable[str] = LEGACY_ALIASES) -> List[Symbol]:
    return walk(node, DeprecatedTokenCollector(tokens))


# ----------------------------------------------------------------------
# Assignment targets


class AssignmentCollector(SetVisitor):
    def visit_call(self, node: Call) -> Set[str]:
        if node.is_call_to(*ASSIGNMENT_OPS) and len(node.args) == 2:
            target = node.args[0].value
            if isinstance(target, Symbol):
                return {target.name} | self.walk(node.args[1].value)
        return self.union(node.children())


def find_assign(node: ASTNode) -> Set[str]:
    """
    Names directly assigned with <-, <<- or =.

    Only bare symbol targets count: `l$a <- 5` assigns to nothing here.
    Assigned values are searched too, so `a <- b <- 1` gives {a, b}.
    """
    return walk(node, AssignmentCollector())


# ----------------------------------------------------------------------
# Global references


class Scope:
    """Names bound in one function body (or at top level)."""

    def __init__(self, parent: Optional['Scope'] = None):
        self.parent = parent
        self.names: Set[str] = set()
        # (params, body) of function definitions met in this scope; analysed
        # once the scope is complete
        self.deferred: List[Tuple[ParamList, Optional[ASTNode]]] = []

    def is_bound(self, name: str) -> bool:
        scope = self
        while scope is not None:
            if name in scope.names:
                return True
            scope = scope.parent
        return False


class GlobalReferenceFinder(Visitor):
    """
    Collects symbols that are read but not bound locally.

    Statements are visited in order and an assignment only binds its name
    for the statements after it, so a read before the first assignment is
    global. Function bodies are different: they run after they are defined,
    so each body is analysed once its enclosing scope is complete and sees
    every name bound anywhere around it.
    """

    def __init__(self, include_functions: bool = True):
        self.include_functions = include_functions
        self.scope = Scope()
        self.globals: Set[str] = set()

    def find(self, nodes: Sequence[ASTNode]) -> Set[str]:
        for node in nodes:
            self.walk(node)
        self.close_scope(self.scope)
        return self.globals

    def close_scope(self, scope: Scope):
        while scope.deferred:
            params, body = scope.deferred.pop(0)
            self.analyse_function(Scope(scope), params, body)

    def analyse_function(self, scope: Scope, params: ParamList, body: Optional[ASTNode]):
        outer = self.scope
        self.scope = scope
        scope.names.update(params.names)
        if body is not None:
            self.walk(body)
        # defaults are evaluated lazily inside the body's frame
        for param in params.params:
            self.walk(param.default)
        self.scope = outer
        self.close_scope(scope)

    def read(self, name: str):
        if not self.scope.is_bound(name):
            self.globals.add(name)

    def read_head(self, head: ASTNode):
        if not isinstance(head, Symbol):
            self.walk(head)
        elif self.include_functions and head.name not in LANGUAGE_CONSTRUCTS:
            self.read(head.name)

    def visit_symbol(self, node: Symbol):
        self.read(node.name)

    def visit_param_list(self, node: ParamList):
        for param in node.params:
            self.walk(param.default)

    def visit_call(self, node: Call):
        args = [a.value for a in node.args]

        if node.is_call_to(*ASSIGNMENT_OPS) and len(args) == 2:
            self.visit_assignment(node.head.name, args[0], args[1])
            return

        if node.is_call_to('function') and args and isinstance(args[0], ParamList):
            body = args[1] if len(args) > 1 else None
            self.scope.deferred.append((args[0], body))
            return

        if node.is_call_to('for') and len(args) == 3 and isinstance(args[0], Symbol):
            self.walk(args[1])
            self.scope.names.add(args[0].name)
            self.walk(args[2])
            return

        if node.is_call_to('quote', '~', '::', ':::'):
            return

        self.read_head(node.head)
        if node.is_call_to('$', '@') and len(args) == 2:
            self.walk(args[0])
            return
        for value in args:
            self.walk(value)

    def visit_assignment(self, op: str, target: ASTNode, value: ASTNode):
        self.walk(value)
        if isinstance(target, Constant) and isinstance(target.value, str):
            target = Symbol(target.value)
        if isinstance(target, Symbol):
            # <<- assigns in an enclosing scope, never locally
            if op != '<<-':
                self.scope.names.add(target.name)
            return
        self.visit_target(target)

    def visit_target(self, target: ASTNode):
        """Read the parts of a replacement target such as names(x) or l$a."""
        if isinstance(target, Symbol):
            self.read(target.name)
            return
        if not isinstance(target, Call) or not target.args:
            self.walk(target)
            return
        self.read_head(target.head)
        self.visit_target(target.args[0].value)
        if target.is_call_to('$', '@'):
            return
        for arg in target.args[1:]:
            self.walk(arg.value)


def find_globals(nodes: Union[ASTNode, Sequence[ASTNode]],
                 include_functions: bool = True) -> Set[str]:
    """
    Names read but never bound locally.

    Args:
        nodes: a tree or a sequence of top-level trees (a parsed file)
        include_functions: also report the names of called functions

    Returns:
        Set of global names
    """
    if isinstance(nodes, ASTNode):
        nodes = [nodes]
    return GlobalReferenceFinder(include_functions).find(nodes)


__all__ = [
    'LEGACY_ALIASES', 'LEGACY_REPLACEMENTS', 'ASSIGNMENT_OPS', 'LANGUAGE_CONSTRUCTS',
    'deprecated_token', 'find_deprecated_tokens', 'find_assign', 'find_globals',
    'expr_type', 'count_nodes',
    'DeprecatedTokenFinder', 'DeprecatedTokenCollector', 'AssignmentCollector',
    'GlobalReferenceFinder', 'Scope',
]
