"""
rexpr engine.

Coordinates parsing, analysis, quasiquotation and rendering behind one
configurable object.
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .analysis.analyzers import LEGACY_ALIASES, LEGACY_REPLACEMENTS
from .analysis.passes import AssignmentPass, DeprecatedTokenPass, GlobalReferencePass
from .parser import Deparser, Parser, parse_expr
from .parser.ast_nodes import ASTNode, Symbol
from .lexer import Lexer
from .quote.evaluator import Context, Evaluator, base_context
from .quote.quasiquote import quasiquote

Source = Union[str, ASTNode, Sequence[ASTNode]]


@dataclass
class AnalysisReport:
    """Results of Engine.analyze()."""
    expressions: int
    assignments: Set[str] = field(default_factory=set)
    globals: Set[str] = field(default_factory=set)
    deprecated: List[Symbol] = field(default_factory=list)

    @property
    def uses_deprecated_tokens(self) -> bool:
        return bool(self.deprecated)


class Engine:
    """Main entry point for working with R expressions."""

    def __init__(self, verbose: bool = False, escape: str = '.', splice: Optional[str] = '..',
                 deprecated_tokens: Iterable[str] = LEGACY_ALIASES,
                 context: Union[Context, Mapping[str, Any], None] = None,
                 filename: str = "<input>", include_functions: bool = True,
                 evaluator: Optional[Evaluator] = None):
        self.verbose = verbose
        self.escape = escape
        self.splice = splice
        self.deprecated_tokens = tuple(deprecated_tokens)
        self.filename = filename
        self.include_functions = include_functions  # report called functions as globals
        self.evaluator = evaluator or Evaluator()
        if context is None:
            self.context = base_context()
        elif isinstance(context, Context):
            self.context = context
        else:
            self.context = base_context(**context)
        self.deparser = Deparser()
        self.warnings: List[str] = []

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[rexpr] {message}", file=sys.stderr)

    def warn(self, code: str, message: str):
        """Add a warning with a code."""
        warning = f"{code}: {message}"
        self.warnings.append(warning)
        if self.verbose:
            print(f"[rexpr] Warning: {warning}", file=sys.stderr)

    def get_warnings(self) -> List[str]:
        """Get all warnings generated so far."""
        return self.warnings.copy()

    # ------------------------------------------------------------------
    # Text <-> trees

    def parse(self, source: str, filename: Optional[str] = None) -> List[ASTNode]:
        filename = filename or self.filename
        self.log(f"Lexing {filename}...")
        tokens = Lexer(source, filename).tokenize()
        self.log(f"  {len(tokens)} tokens")
        program = Parser(tokens, filename).parse()
        self.log(f"  {len(program)} expression(s)")
        return program

    def parse_expr(self, source: str, filename: Optional[str] = None) -> ASTNode:
        return parse_expr(source, filename or self.filename)

    def parse_file(self, path: Union[str, Path]) -> List[ASTNode]:
        """Read and parse an R source file."""
        self.log(f"Reading {path}...")
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.parse(source, str(path))

    def render(self, node: ASTNode) -> str:
        return self.deparser.render(node)

    def render_all(self, nodes: Sequence[ASTNode]) -> str:
        return "\n".join(self.deparser.render(node) for node in nodes)

    def reformat(self, source: str) -> str:
        """Parse and render source again: comments go, layout is normalised."""
        return self.render_all(self.parse(source))

    def check_round_trip(self, node: ASTNode) -> bool:
        """True if rendering node and parsing the text gives node back."""
        text = self.render(node)
        same = parse_expr(text, "<render>") == node
        if not same:
            self.warn("RX0201", f"rendering is lossy: {text}")
        return same

    # ------------------------------------------------------------------
    # Analysis and quasiquotation

    def _program(self, source: Source, filename: Optional[str] = None) -> List[ASTNode]:
        if isinstance(source, str):
            return self.parse(source, filename)
        if isinstance(source, ASTNode):
            return [source]
        return list(source)

    def analyze(self, source: Source, filename: Optional[str] = None) -> AnalysisReport:
        """
        Run the analysis passes over source.

        Every use of a deprecated token is also reported as an RX0101
        warning with its location. filename names the source in those
        warnings and defaults to the engine's filename.
        """
        filename = filename or self.filename
        program = self._program(source, filename)
        self.log(f"Analysing {len(program)} expression(s)...")

        deprecated = DeprecatedTokenPass(self.deprecated_tokens, verbose=self.verbose).run(program)
        for symbol in deprecated:
            replacement = LEGACY_REPLACEMENTS.get(symbol.name)
            hint = f", use {replacement}" if replacement else ""
            self.warn("RX0101", f"{filename}:{symbol.line}:{symbol.column}: "
                                f"'{symbol.name}' is deprecated{hint}")

        return AnalysisReport(
            expressions=len(program),
            assignments=AssignmentPass(verbose=self.verbose).run(program),
            globals=GlobalReferencePass(self.include_functions, verbose=self.verbose).run(program),
            deprecated=deprecated,
        )

    def analyze_file(self, path: Union[str, Path]) -> AnalysisReport:
        """Read, parse and analyse an R source file; warnings name the file."""
        return self.analyze(self.parse_file(path), str(path))

    def _context(self, context) -> Context:
        if context is None:
            return self.context
        if isinstance(context, Context):
            return context
        return self.context.child(context)

    def quasiquote(self, source: Union[str, ASTNode],
                   context: Union[Context, Mapping[str, Any], None] = None) -> ASTNode:
        """Expand escapes in source, evaluated against context or the engine's own."""
        node = self.parse_expr(source) if isinstance(source, str) else source
        context = self._context(context)
        self.log(f"Quasiquoting {self.render(node)}")
        return quasiquote(node, context, self.evaluator, self.escape, self.splice)

    def evaluate(self, source: Union[str, ASTNode],
                 context: Union[Context, Mapping[str, Any], None] = None) -> Any:
        node = self.parse_expr(source) if isinstance(source, str) else source
        return self.evaluator.evaluate(node, self._context(context))
