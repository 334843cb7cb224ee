"""
Analysis passes over parsed programs.

A pass wraps one analyzer so that it runs over every top-level expression
of a program, keeps statistics and can report what it does when verbose.
"""

import sys
from collections import Counter
from typing import Any, Dict, Iterable, List, Sequence, Set

from ..parser.ast_nodes import ASTNode, Symbol
from .analyzers import LEGACY_ALIASES, find_assign, find_deprecated_tokens, find_globals


class AnalysisPass:
    """Base class for analysis passes."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.stats: Dict[str, Any] = {}

    def log(self, message: str):
        """Log message if verbose mode enabled."""
        if self.verbose:
            print(f"[analysis] {message}", file=sys.stderr)

    def run(self, program: Sequence[ASTNode]) -> Any:
        """
        Run the pass.

        Args:
            program: top-level expressions, as returned by parse()

        Returns:
            The analysis result
        """
        raise NotImplementedError


class DeprecatedTokenPass(AnalysisPass):
    """Finds every use of a legacy alias such as T or F."""

    def __init__(self, tokens: Iterable[str] = LEGACY_ALIASES, verbose: bool = False):
        super().__init__(verbose)
        self.tokens = tuple(tokens)

    def run(self, program: Sequence[ASTNode]) -> List[Symbol]:
        found: List[Symbol] = []
        for node in program:
            found.extend(find_deprecated_tokens(node, self.tokens))

        usage = Counter(symbol.name for symbol in found)
        self.stats = {
            'expressions': len(program),
            'occurrences': len(found),
            'by_token': dict(usage),
        }
        for name, count in usage.most_common():
            self.log(f"'{name}' used {count} time(s)")
        return found


class AssignmentPass(AnalysisPass):
    """Collects the names assigned to anywhere in the program."""

    def run(self, program: Sequence[ASTNode]) -> Set[str]:
        assigned: Set[str] = set()
        for node in program:
            assigned |= find_assign(node)
        self.stats = {'expressions': len(program), 'names': len(assigned)}
        self.log(f"{len(assigned)} assigned name(s)")
        return assigned


class GlobalReferencePass(AnalysisPass):
    """Collects the names the program reads without binding them."""

    def __init__(self, include_functions: bool = True, verbose: bool = False):
        super().__init__(verbose)
        self.include_functions = include_functions

    def run(self, program: Sequence[ASTNode]) -> Set[str]:
        found = find_globals(list(program), self.include_functions)
        self.stats = {'expressions': len(program), 'globals': len(found)}
        if found:
            self.log(f"globals: {', '.join(sorted(found))}")
        return found
