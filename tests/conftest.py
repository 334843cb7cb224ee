"""
Test fixtures and helpers for rexpr.

The fluent assertion helper keeps the tests close to the R they describe:

    AssertExpr("a <- 1").parses_to(call('<-', sym('a'), 1.0)).round_trips()
    AssertExpr("{ l <- list(); l$a <- 5 }").assigns('l')
    AssertExpr("mean(x, trim = T)").uses_deprecated_tokens()
"""

import sys
from pathlib import Path
from typing import Any, Optional

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from rexpr.analysis import deprecated_token, find_assign, find_globals
from rexpr.errors import UnparsableText
from rexpr.parser import parse, parse_expr, render
from rexpr.parser.ast_nodes import ASTNode
from rexpr.quote import base_context, quasiquote


class ExprAssertion:
    """
    Fluent assertion helper for R source snippets.

    Each check returns self so checks can be chained.
    """

    def __init__(self, source: str):
        self.source = source
        self._tree: Optional[ASTNode] = None

    @property
    def tree(self) -> ASTNode:
        if self._tree is None:
            self._tree = parse_expr(self.source)
        return self._tree

    @property
    def program(self):
        return parse(self.source)

    def parses_to(self, expected: ASTNode) -> 'ExprAssertion':
        assert self.tree == expected, f"{self.source!r} parsed to {self.tree!r}, expected {expected!r}"
        return self

    def does_not_parse(self) -> None:
        with pytest.raises(UnparsableText):
            parse(self.source)

    def renders_as(self, text: str) -> 'ExprAssertion':
        rendered = render(self.tree)
        assert rendered == text, f"{self.source!r} rendered as {rendered!r}, expected {text!r}"
        return self

    def round_trips(self) -> 'ExprAssertion':
        text = render(self.tree)
        again = parse_expr(text)
        assert again == self.tree, f"{self.source!r} rendered as {text!r}, which parses to {again!r}"
        return self

    def assigns(self, *names: str) -> 'ExprAssertion':
        found = set()
        for node in self.program:
            found |= find_assign(node)
        assert found == set(names), f"{self.source!r} assigns {found}, expected {set(names)}"
        return self

    def has_globals(self, *names: str, include_functions: bool = False) -> 'ExprAssertion':
        found = find_globals(self.program, include_functions=include_functions)
        assert found == set(names), f"{self.source!r} has globals {found}, expected {set(names)}"
        return self

    def uses_deprecated_tokens(self) -> 'ExprAssertion':
        assert any(deprecated_token(node) for node in self.program), \
            f"{self.source!r} should use a deprecated token"
        return self

    def does_not_use_deprecated_tokens(self) -> 'ExprAssertion':
        assert not any(deprecated_token(node) for node in self.program), \
            f"{self.source!r} should not use a deprecated token"
        return self

    def quasiquotes_to(self, expected_source: str, **bindings: Any) -> 'ExprAssertion':
        result = quasiquote(self.tree, base_context(**bindings))
        expected = parse_expr(expected_source)
        assert result == expected, f"{self.source!r} expanded to {render(result)!r}, expected {expected_source!r}"
        return self


def AssertExpr(source: str) -> ExprAssertion:
    """Create an expression assertion."""
    return ExprAssertion(source)


@pytest.fixture
def context():
    """Base context with a few numbers and names bound."""
    return base_context(x=1.0, y=2.0, n=3, name='value')
