"""Tests for the Engine facade."""

import pytest

from rexpr import Engine
from rexpr.errors import UnparsableText
from rexpr.parser import parse_expr
from rexpr.parser.ast_nodes import Constant, Symbol
from rexpr.quote import Context


class TestParsing:
    """Text in, trees out, and back."""

    def test_parse(self):
        engine = Engine()
        program = engine.parse("x <- 1\nf(x)")
        assert len(program) == 2
        assert program[1] == parse_expr("f(x)")

    def test_error_carries_filename(self):
        engine = Engine(filename="script.R")
        with pytest.raises(UnparsableText) as info:
            engine.parse("f(")
        assert info.value.source_name == "script.R"
        assert str(info.value).startswith("script.R:")

    def test_parse_file(self, tmp_path):
        path = tmp_path / "analysis.R"
        path.write_text("a <- 1 # one\nb <- a\n", encoding="utf-8")
        program = Engine().parse_file(path)
        assert [node.line for node in program] == [1, 2]

    def test_reformat(self):
        engine = Engine()
        assert engine.reformat("x<-1   # set\nif(x>0){y}") == "x <- 1\nif (x > 0) {\n    y\n}"

    def test_render_all(self):
        engine = Engine()
        assert engine.render_all(engine.parse("a\nb")) == "a\nb"


class TestWarnings:
    """Warnings are collected with codes."""

    def test_deprecated_token_warning(self):
        engine = Engine(filename="model.R")
        engine.analyze("fit <- lm(y ~ x)\nmean(x, trim = T)")
        assert engine.get_warnings() == ["RX0101: model.R:2:16: 'T' is deprecated, use TRUE"]

    def test_warning_names_the_analysed_file(self, tmp_path):
        path = tmp_path / "old.R"
        path.write_text("x <- F\n", encoding="utf-8")
        engine = Engine(filename="default.R")
        engine.analyze_file(path)
        engine.analyze("y <- T", filename="inline.R")
        engine.analyze(engine.parse("z <- T", "parsed.R"), "parsed.R")
        assert engine.get_warnings() == [
            f"RX0101: {path}:1:6: 'F' is deprecated, use FALSE",
            "RX0101: inline.R:1:6: 'T' is deprecated, use TRUE",
            "RX0101: parsed.R:1:6: 'T' is deprecated, use TRUE",
        ]

    def test_get_warnings_is_a_copy(self):
        engine = Engine()
        engine.warn("RX9999", "test")
        engine.get_warnings().clear()
        assert engine.get_warnings() == ["RX9999: test"]

    def test_round_trip_check(self):
        engine = Engine()
        assert engine.check_round_trip(parse_expr("a + b * c"))
        assert engine.get_warnings() == []
        assert not engine.check_round_trip(Constant(-1.0))
        assert engine.get_warnings() == ["RX0201: rendering is lossy: -1"]

    def test_custom_tokens(self):
        engine = Engine(deprecated_tokens=('sapply',))
        report = engine.analyze("sapply(xs, f)")
        assert report.uses_deprecated_tokens
        assert engine.get_warnings() == ["RX0101: <input>:1:1: 'sapply' is deprecated"]


class TestLogging:
    """Verbose engines report progress on stderr."""

    def test_verbose(self, capsys):
        engine = Engine(verbose=True)
        engine.parse("a <- T")
        engine.analyze("a <- T")
        err = capsys.readouterr().err
        assert "[rexpr] Lexing <input>..." in err
        assert "[rexpr]   1 expression(s)" in err
        assert "[rexpr] Warning: RX0101:" in err
        assert "[analysis] 'T' used 1 time(s)" in err

    def test_quiet(self, capsys):
        engine = Engine()
        engine.analyze("a <- T")
        assert capsys.readouterr().err == ""
        assert len(engine.get_warnings()) == 1


class TestAnalyze:
    """analyze() gathers every analysis into one report."""

    def test_report(self):
        report = Engine(include_functions=False).analyze(
            "total <- 0\nfor (i in xs) total <- total + i\nok <- total > F"
        )
        assert report.expressions == 3
        assert report.assignments == {'total', 'ok'}
        assert report.globals == {'xs', 'F'}
        assert [s.name for s in report.deprecated] == ['F']

    def test_functions_reported_by_default(self):
        report = Engine().analyze("mean(x)")
        assert report.globals == {'mean', 'x'}
        assert not report.uses_deprecated_tokens

    def test_accepts_trees(self):
        engine = Engine()
        assert engine.analyze(parse_expr("a <- b")).assignments == {'a'}
        assert engine.analyze([parse_expr("a"), parse_expr("b")]).expressions == 2


class TestQuasiquoteAndEvaluate:
    """Expansion and evaluation against the engine context."""

    def test_quasiquote_with_dict(self):
        engine = Engine()
        result = engine.quasiquote("f(.(x + 1), ..(rest))", {'x': 1.0, 'rest': [Symbol('y')]})
        assert result == parse_expr("f(2, y)")

    def test_engine_context(self):
        engine = Engine(context={'col': 'mpg'})
        assert engine.quasiquote("df[[.(col)]]") == parse_expr('df[["mpg"]]')

    def test_call_context_extends_engine_context(self):
        engine = Engine(context={'a': 1.0})
        assert engine.quasiquote("f(.(a + b))", {'b': 2.0}) == parse_expr("f(3)")

    def test_explicit_context_replaces_engine_context(self):
        engine = Engine(context={'a': 1.0})
        assert engine.quasiquote(parse_expr("f(.(a))"), Context({'a': 5.0})) == parse_expr("f(5)")

    def test_custom_escape(self):
        engine = Engine(escape='bq', splice=None)
        assert engine.quasiquote("f(bq(x), ..(y))", {'x': 1.0}) == parse_expr("f(1, ..(y))")

    def test_evaluate(self):
        engine = Engine(context={'x': 2.0})
        assert engine.evaluate("x * 3") == 6.0
        assert engine.evaluate("paste0(p, x)", {'p': 'v'}) == "v2"
