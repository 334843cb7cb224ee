"""Tests for generic tree traversal."""

from rexpr.calls import call, sym
from rexpr.parser import parse_expr
from rexpr.parser.ast_nodes import MISSING, Call, Constant, NodeType, ParamList, Symbol
from rexpr.walker import AnyVisitor, SetVisitor, Transformer, Visitor, count_nodes, iter_nodes, walk


class KindRecorder(Visitor):
    """Records which handler saw each node, recursing into everything."""

    def __init__(self):
        self.seen = []

    def visit_constant(self, node):
        self.seen.append(('constant', node.value))

    def visit_symbol(self, node):
        self.seen.append(('symbol', node.name))

    def visit_missing(self, node):
        self.seen.append(('missing', None))

    def visit_call(self, node):
        self.seen.append(('call', None))
        for child in node.children():
            self.walk(child)

    def visit_param_list(self, node):
        self.seen.append(('params', node.names))
        for child in node.children():
            self.walk(child)


class TestWalk:
    """walk() dispatches on the node kind."""

    def test_each_kind_has_a_handler(self):
        recorder = KindRecorder()
        walk(parse_expr("function(x, y = 1) f(y)"), recorder)
        assert recorder.seen == [
            ('call', None),
            ('symbol', 'function'),
            ('params', ('x', 'y')),
            ('missing', None),
            ('constant', 1.0),
            ('call', None),
            ('symbol', 'f'),
            ('symbol', 'y'),
        ]

    def test_base_visitor_returns_none(self):
        assert walk(Constant(1.0), Visitor()) is None
        assert walk(MISSING, Visitor()) is None

    def test_visitor_controls_recursion(self):
        """A visitor that does not recurse only sees the root."""
        class RootOnly(Visitor):
            def generic_visit(self, node):
                return node.node_type

        assert walk(parse_expr("f(g(x))"), RootOnly()) == NodeType.CALL


class Rename(Transformer):
    def __init__(self, old, new):
        self.old, self.new = old, new

    def visit_symbol(self, node):
        return Symbol(self.new) if node.name == self.old else node


class TestTransformer:
    """Transformers rebuild trees and share unchanged parts."""

    def test_identity_returns_same_object(self):
        tree = parse_expr("function(x, y = 2) { z <- x + y; f(z) }")
        assert walk(tree, Transformer()) is tree

    def test_rename(self):
        tree = parse_expr("f(x, g(y), x + 1)")
        renamed = walk(tree, Rename('x', 'w'))
        assert renamed == parse_expr("f(w, g(y), w + 1)")
        assert tree == parse_expr("f(x, g(y), x + 1)")

    def test_unchanged_subtrees_shared(self):
        tree = parse_expr("f(x, g(y))")
        renamed = walk(tree, Rename('x', 'w'))
        assert renamed.args[1].value is tree.args[1].value
        assert renamed.head is tree.head

    def test_heads_are_transformed(self):
        renamed = walk(parse_expr("x(1)"), Rename('x', 'w'))
        assert renamed == parse_expr("w(1)")

    def test_parameter_defaults_are_transformed(self):
        tree = parse_expr("function(a = x) a")
        renamed = walk(tree, Rename('x', 'w'))
        assert renamed == parse_expr("function(a = w) a")
        assert isinstance(renamed.args[0].value, ParamList)

    def test_argument_names_preserved(self):
        renamed = walk(parse_expr("f(a = x, x)"), Rename('x', 'w'))
        assert renamed.names == ('a', None)

    def test_positions_kept_on_rebuilt_calls(self):
        tree = parse_expr("\n  f(x)")
        renamed = walk(tree, Rename('x', 'w'))
        assert (renamed.line, renamed.column) == (2, 3)


class HasSymbol(AnyVisitor):
    def __init__(self, name):
        self.name = name
        self.tested = []

    def test_symbol(self, node):
        self.tested.append(node.name)
        return node.name == self.name


class TestAnyVisitor:
    """Boolean searches stop at the first hit."""

    def test_found(self):
        assert walk(parse_expr("f(a, g(b))"), HasSymbol('b'))
        assert not walk(parse_expr("f(a, g(b))"), HasSymbol('c'))

    def test_short_circuits(self):
        finder = HasSymbol('a')
        walk(parse_expr("f(a, b, c)"), finder)
        assert finder.tested == ['f', 'a']

    def test_parameter_defaults_searched(self):
        assert walk(parse_expr("function(x = b) x"), HasSymbol('b'))

    def test_constants_and_missing(self):
        assert not walk(MISSING, HasSymbol('x'))
        assert not walk(Constant("x"), HasSymbol('x'))


class TestHelpers:
    """Tests for count_nodes, iter_nodes and SetVisitor."""

    def test_count_nodes(self):
        assert count_nodes(Symbol('x')) == 1
        # f, x, +, y, 1 and the two calls
        assert count_nodes(parse_expr("f(x, y + 1)")) == 7
        # function, params, missing default, body x and the call
        assert count_nodes(parse_expr("function(x) x")) == 5

    def test_iter_nodes_is_pre_order(self):
        tree = parse_expr("f(x, g(y))")
        nodes = list(iter_nodes(tree))
        assert nodes[0] is tree
        assert [n.name for n in nodes if isinstance(n, Symbol)] == ['f', 'x', 'g', 'y']
        assert sum(1 for n in nodes if isinstance(n, Call)) == 2

    def test_set_visitor(self):
        class Names(SetVisitor):
            def visit_symbol(self, node):
                return {node.name}

        assert walk(parse_expr("f(x, g(x, y))"), Names()) == {'f', 'g', 'x', 'y'}
        assert walk(call('c', 1.0), Names()) == {'c'}
        assert walk(sym('z'), Names()) == {'z'}
