"""
Generic traversal over expression trees.

walk() hands a node to the visitor method for its kind. Constants, symbols
and the missing marker are leaves. For calls and parameter lists the
visitor itself decides whether and when to walk the children, so each
analysis can work pre-order or post-order as it needs.
"""

from typing import Any, Dict, Iterator, List, Set

from .parser.ast_nodes import ASTNode, Arg, Call, NodeType, Param, ParamList

_HANDLERS: Dict[NodeType, str] = {
    NodeType.CONSTANT: 'visit_constant',
    NodeType.SYMBOL: 'visit_symbol',
    NodeType.MISSING: 'visit_missing',
    NodeType.CALL: 'visit_call',
    NodeType.PARAM_LIST: 'visit_param_list',
}

assert set(_HANDLERS) == set(NodeType), "every node kind needs a handler"


def walk(node: ASTNode, visitor: 'Visitor') -> Any:
    """Dispatch node to the visitor method for its kind."""
    return getattr(visitor, _HANDLERS[node.node_type])(node)


class Visitor:
    """
    Base visitor. Every kind falls back to generic_visit, which returns
    None; subclasses override the kinds they care about.
    """

    def walk(self, node: ASTNode) -> Any:
        return walk(node, self)

    def generic_visit(self, node: ASTNode) -> Any:
        return None

    def visit_constant(self, node) -> Any:
        return self.generic_visit(node)

    def visit_symbol(self, node) -> Any:
        return self.generic_visit(node)

    def visit_missing(self, node) -> Any:
        return self.generic_visit(node)

    def visit_call(self, node) -> Any:
        return self.generic_visit(node)

    def visit_param_list(self, node) -> Any:
        return self.generic_visit(node)


class Transformer(Visitor):
    """
    Rebuilds a tree bottom-up.

    Leaves are returned unchanged. A call or parameter list is rebuilt from
    its transformed children; if no child changed the original node is
    returned, so untouched sub-trees are shared with the input.
    """

    def generic_visit(self, node: ASTNode) -> ASTNode:
        return node

    def visit_call(self, node: Call) -> ASTNode:
        head = self.transform_head(node)
        args = self.transform_args(node)
        if head is node.head and len(args) == len(node.args) and \
                all(new is old for new, old in zip(args, node.args)):
            return node
        return Call(head, args, line=node.line, column=node.column)

    def transform_head(self, node: Call) -> ASTNode:
        return self.walk(node.head)

    def transform_args(self, node: Call) -> List[Arg]:
        args = []
        for arg in node.args:
            value = self.walk(arg.value)
            args.append(arg if value is arg.value else Arg(arg.name, value))
        return args

    def visit_param_list(self, node: ParamList) -> ASTNode:
        params = []
        for param in node.params:
            default = self.walk(param.default)
            params.append(param if default is param.default else Param(param.name, default))
        if all(new is old for new, old in zip(params, node.params)):
            return node
        return ParamList(params, line=node.line, column=node.column)


class AnyVisitor(Visitor):
    """True as soon as any node in the tree passes a test; stops there."""

    def test_constant(self, node) -> bool:
        return False

    def test_symbol(self, node) -> bool:
        return False

    def test_call(self, node) -> bool:
        return False

    def visit_constant(self, node) -> bool:
        return self.test_constant(node)

    def visit_symbol(self, node) -> bool:
        return self.test_symbol(node)

    def visit_missing(self, node) -> bool:
        return False

    def visit_call(self, node: Call) -> bool:
        return self.test_call(node) or any(self.walk(child) for child in node.children())

    def visit_param_list(self, node: ParamList) -> bool:
        return any(self.walk(child) for child in node.children())


class SetVisitor(Visitor):
    """Collects a set; calls and parameter lists union their children."""

    def generic_visit(self, node: ASTNode) -> Set[str]:
        return set()

    def visit_call(self, node: Call) -> Set[str]:
        return self.union(node.children())

    def visit_param_list(self, node: ParamList) -> Set[str]:
        return self.union(node.children())

    def union(self, nodes) -> Set[str]:
        result: Set[str] = set()
        for node in nodes:
            result |= self.walk(node)
        return result


class _Counter(Visitor):
    def generic_visit(self, node):
        return 1

    def visit_call(self, node):
        return 1 + sum(self.walk(child) for child in node.children())

    def visit_param_list(self, node):
        return 1 + sum(self.walk(child) for child in node.children())


def count_nodes(node: ASTNode) -> int:
    """Number of nodes in the tree, root included."""
    return walk(node, _Counter())


def iter_nodes(node: ASTNode) -> Iterator[ASTNode]:
    """Every node of the tree in pre-order."""
    yield node
    for child in node.children():
        yield from iter_nodes(child)
