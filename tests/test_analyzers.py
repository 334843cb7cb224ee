"""Tests for the static analyzers and their passes."""

from rexpr.analysis import (
    AssignmentPass, DeprecatedTokenPass, GlobalReferencePass, count_nodes, deprecated_token,
    expr_type, find_assign, find_deprecated_tokens, find_globals,
)
from rexpr.parser import parse, parse_expr
from rexpr.parser.ast_nodes import MISSING, ParamList, Symbol

from .conftest import AssertExpr


class TestDeprecatedToken:
    """Detecting the legacy T and F aliases."""

    def test_alias_detected(self):
        AssertExpr("mean(x, trim = T)").uses_deprecated_tokens()
        AssertExpr("F").uses_deprecated_tokens()

    def test_literal_not_detected(self):
        AssertExpr("mean(x, trim = TRUE)").does_not_use_deprecated_tokens()
        AssertExpr("x").does_not_use_deprecated_tokens()

    def test_strings_and_names_are_not_tokens(self):
        AssertExpr('f("T")').does_not_use_deprecated_tokens()
        AssertExpr("f(T = 1)").does_not_use_deprecated_tokens()

    def test_heads_and_defaults_searched(self):
        AssertExpr("T(1)").uses_deprecated_tokens()
        AssertExpr("function(x = F) x").uses_deprecated_tokens()

    def test_custom_tokens(self):
        tree = parse_expr("sapply(x, length)")
        assert deprecated_token(tree, tokens=('sapply',))
        assert not deprecated_token(tree)

    def test_all_occurrences_with_positions(self):
        found = find_deprecated_tokens(parse_expr("f(T,\n  g(F), T)"))
        assert [s.name for s in found] == ['T', 'F', 'T']
        assert (found[1].line, found[1].column) == (2, 5)


class TestFindAssign:
    """Collecting direct assignment targets."""

    def test_block_with_repeats(self):
        AssertExpr("{a <- 1; b <- 2; a <- 3}").assigns('a', 'b')

    def test_derived_target_not_collected(self):
        AssertExpr("{ l <- list(); l$a <- 5 }").assigns('l')
        AssertExpr("names(x) <- c('a', 'b')").assigns()

    def test_all_assignment_operators(self):
        AssertExpr("{ a <- 1; b <<- 2; c = 3; 4 -> d }").assigns('a', 'b', 'c', 'd')

    def test_chained_assignment(self):
        AssertExpr("a <- b <- 1").assigns('a', 'b')

    def test_nested_in_calls_and_functions(self):
        AssertExpr("f(x <- 1, function() { y <- 2 })").assigns('x', 'y')

    def test_named_arguments_are_not_assignments(self):
        AssertExpr("f(a = 1)").assigns()

    def test_leaves(self):
        assert find_assign(Symbol('a')) == set()
        assert find_assign(MISSING) == set()


class TestFindGlobals:
    """Which names are read without being bound locally."""

    def test_simple_reads(self):
        AssertExpr("x + y").has_globals('x', 'y')
        AssertExpr("x + y").has_globals('x', 'y', '+', include_functions=True)

    def test_bound_before_read(self):
        AssertExpr("{ a <- 1; a + b }").has_globals('b')

    def test_read_before_assignment_is_global(self):
        AssertExpr("{ x <- x + 1 }").has_globals('x')
        AssertExpr("{ print(a); a <- 1; a }").has_globals('a')

    def test_top_level_sequence(self):
        AssertExpr("a <- 1\nb <- a + c").has_globals('c')

    def test_derived_target_reads_base(self):
        AssertExpr("{ l <- list(); l$a <- 5 }").has_globals()
        AssertExpr("m$a <- 5").has_globals('m')
        AssertExpr("names(x)[i] <- v").has_globals('x', 'i', 'v')

    def test_member_field_not_read(self):
        AssertExpr("l$field").has_globals('l')
        AssertExpr("obj@slot").has_globals('obj')

    def test_superassignment_binds_nothing(self):
        AssertExpr("{ counter <<- 0; counter + 1 }").has_globals('counter')

    def test_for_binds_variable_after_sequence(self):
        AssertExpr("for (i in seq_len(n)) total <- total + i").has_globals('n', 'total')
        AssertExpr("for (i in i) i").has_globals('i')

    def test_parameters_are_bound(self):
        AssertExpr("function(x, y = x * 2) x + y + z").has_globals('z')

    def test_parameter_defaults_see_function_scope(self):
        AssertExpr("function(x = w) { w <- 1; x }").has_globals()

    def test_body_sees_later_enclosing_bindings(self):
        source = "f <- function() helper()\nhelper <- function() 1"
        AssertExpr(source).has_globals(include_functions=True)
        AssertExpr("f <- function() g()").has_globals('g', include_functions=True)

    def test_recursion_resolves(self):
        source = "fact <- function(n) if (n <= 1) 1 else n * fact(n - 1)"
        AssertExpr(source).has_globals('<=', '*', '-', include_functions=True)

    def test_body_bindings_do_not_leak(self):
        AssertExpr("f <- function() { inner <- 1 }\ninner").has_globals('inner')

    def test_nested_functions(self):
        AssertExpr("function(a) function(b) a + b + c").has_globals('c')

    def test_quote_and_formula_are_data(self):
        AssertExpr("quote(a + b)").has_globals()
        AssertExpr("lm(y ~ x, data = d)").has_globals('d')
        AssertExpr("lm(y ~ x, data = d)").has_globals('lm', 'd', include_functions=True)

    def test_language_constructs_never_reported(self):
        source = "{ if (a) b else c; while (d) break; repeat next; (e) }"
        AssertExpr(source).has_globals('a', 'b', 'c', 'd', 'e', include_functions=True)

    def test_namespaced_functions_not_reported(self):
        AssertExpr("stats::median(x)").has_globals('x', include_functions=True)

    def test_string_assignment_target(self):
        AssertExpr('{ "a" <- 1; a }').has_globals()

    def test_single_node(self):
        assert find_globals(parse_expr("f(x)")) == {'f', 'x'}
        assert find_globals(parse_expr("f(x)"), include_functions=False) == {'x'}

    def test_parameter_list_alone(self):
        assert find_globals(ParamList([('a', Symbol('b'))])) == {'b'}


class TestHelpers:
    """Small helpers over trees."""

    def test_expr_type(self):
        assert expr_type(parse_expr("1")) == 'constant'
        assert expr_type(parse_expr("x")) == 'symbol'
        assert expr_type(parse_expr("f(x)")) == 'call'
        assert expr_type(MISSING) == 'missing'
        assert expr_type(parse_expr("function(x) x").args[0].value) == 'pairlist'

    def test_count_nodes(self):
        assert count_nodes(parse_expr("a + b")) == 4


class TestPasses:
    """Passes run analyzers over whole programs."""

    PROGRAM = "x <- c(T, F)\nmean(x, trim = T)\nf <- function(v) v + offset"

    def test_deprecated_token_pass(self):
        program = parse(self.PROGRAM)
        pass_ = DeprecatedTokenPass()
        found = pass_.run(program)
        assert [s.name for s in found] == ['T', 'F', 'T']
        assert pass_.stats == {'expressions': 3, 'occurrences': 3, 'by_token': {'T': 2, 'F': 1}}

    def test_assignment_pass(self):
        pass_ = AssignmentPass()
        assert pass_.run(parse(self.PROGRAM)) == {'x', 'f'}
        assert pass_.stats['names'] == 2

    def test_global_reference_pass(self):
        pass_ = GlobalReferencePass(include_functions=False)
        assert pass_.run(parse(self.PROGRAM)) == {'T', 'F', 'offset'}
        assert pass_.stats['globals'] == 3

    def test_verbose_logging(self, capsys):
        DeprecatedTokenPass(verbose=True).run(parse(self.PROGRAM))
        err = capsys.readouterr().err
        assert "[analysis] 'T' used 2 time(s)" in err

    def test_quiet_by_default(self, capsys):
        GlobalReferencePass().run(parse(self.PROGRAM))
        assert capsys.readouterr().err == ""
