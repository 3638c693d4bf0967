"""
Tests for Calla semantic analysis
"""

import pytest
from core import (
    Assignment, Call, Function, FunctionDeclaration, PrintStatement, Variable,
    VariableDeclaration, WhileStatement,
)
from semantics import (
    ARITY_MISMATCH, DUPLICATE_DECLARATION, READ_ONLY_ASSIGNMENT, UNDECLARED_NAME,
    WRONG_ENTITY_KIND, CallaSemanticsError, analyze_program, analyze_statement,
    create_analyzer, create_debug_analyzer, make_root_scope, scope_add, scope_lookup,
)
from stdlib import STANDARD_LIBRARY


def analysis_error(analyze, source):
    with pytest.raises(CallaSemanticsError) as exc_info:
        analyze(source)
    return exc_info.value


class TestDecoration:
    """Identifiers are replaced by the entities they name"""

    def test_variable_reads_share_the_declared_entity(self, analyze):
        program = analyze("let x = 1; print x; x = x + 1;")
        declaration, print_stmt, assignment = program.statements
        assert isinstance(declaration, VariableDeclaration)
        assert isinstance(print_stmt, PrintStatement)
        assert isinstance(assignment, Assignment)
        assert print_stmt.argument is declaration.variable
        assert assignment.target is declaration.variable
        assert assignment.source.left is declaration.variable

    def test_literals_are_native_values(self, analyze):
        program = analyze("let a = 42; let b = 2.5; let c = true; let d = 2.75E+19;")
        values = [s.initializer for s in program.statements]
        assert values == [42.0, 2.5, True, 2.75e19]
        assert isinstance(values[0], float)
        assert values[2] is True

    def test_let_variables_are_mutable(self, analyze):
        program = analyze("let x = 1; x = 3;")
        assert program.statements[0].variable.read_only is False

    def test_function_parameters_are_read_only(self, analyze):
        program = analyze("function f(x, y) = x * y;")
        declaration = program.statements[0]
        assert isinstance(declaration, FunctionDeclaration)
        assert isinstance(declaration.fun, Function)
        assert declaration.fun.param_count == 2
        assert declaration.fun.user_defined
        assert all(p.read_only for p in declaration.params)
        assert declaration.body.left is declaration.params[0]

    def test_parameter_shadows_outer_variable(self, analyze):
        program = analyze("let x = 1; function f(x) = x; print x;")
        outer = program.statements[0].variable
        declaration = program.statements[1]
        assert declaration.body is declaration.params[0]
        assert declaration.body is not outer
        assert program.statements[2].argument is outer

    def test_function_body_sees_globals(self, analyze):
        program = analyze("let k = 2; function scale(x) = k * x;")
        assert program.statements[1].body.left is program.statements[0].variable

    def test_recursive_function(self, analyze):
        program = analyze("function fact(n) = n <= 1 ? 1 : n * fact(n - 1);")
        declaration = program.statements[0]
        recursive_call = declaration.body.alternate.right
        assert isinstance(recursive_call, Call)
        assert recursive_call.callee is declaration.fun

    def test_standard_library_entities(self, analyze):
        program = analyze("print sqrt(π);")
        call = program.statements[0].argument
        assert call.callee is STANDARD_LIBRARY["sqrt"]
        assert call.args[0] is STANDARD_LIBRARY["π"]
        assert not call.callee.user_defined

    def test_exact_argument_count_accepts_any_literals(self, analyze):
        program = analyze("function f(a, b) = a; print f(true, 1); print hypot(3, 4);")
        assert len(program.statements) == 3

    def test_keyword_prefixed_unicode_names(self, analyze):
        program = analyze("let printé = 1; function leté(a) = a; print leté(printé);")
        declaration = program.statements[0]
        assert declaration.variable.name == "printé"
        call = program.statements[2].argument
        assert call.callee is program.statements[1].fun
        assert call.args[0] is declaration.variable

    def test_while_block_does_not_open_a_scope(self, analyze):
        program = analyze("let i = 0; while i < 3 { let j = i; i = i + 1; } print j;")
        loop = program.statements[1]
        assert isinstance(loop, WhileStatement)
        inner = loop.body[0].variable
        assert program.statements[2].argument is inner

    def test_each_run_has_its_own_scope(self, analyze):
        first = analyze("let x = 1;")
        second = analyze("let x = 1;")
        assert first.statements[0].variable is not second.statements[0].variable

    def test_entities_compare_by_identity(self):
        assert Variable("x") != Variable("x")
        same = Variable("x")
        assert same == same
        assert len({Variable("x"), Variable("x")}) == 2


class TestSemanticErrors:
    """Each check aborts the analysis with a typed error"""

    def test_duplicate_variable(self, analyze):
        error = analysis_error(analyze, "let x = 1;\nlet x = 2;")
        assert error.kind == DUPLICATE_DECLARATION
        assert error.message == "x has already been declared"
        assert (error.span.start_line, error.span.start_col) == (2, 5)

    def test_function_name_clashes_with_variable(self, analyze):
        error = analysis_error(analyze, "let f = 1; function f(x) = x;")
        assert error.kind == DUPLICATE_DECLARATION

    def test_duplicate_parameter(self, analyze):
        error = analysis_error(analyze, "function f(x, x) = x;")
        assert error.kind == DUPLICATE_DECLARATION

    def test_standard_library_names_are_taken(self, analyze):
        error = analysis_error(analyze, "let sqrt = 1;")
        assert error.kind == DUPLICATE_DECLARATION

    def test_declaration_inside_block_clashes(self, analyze):
        error = analysis_error(analyze, "while false { let j = 1; } let j = 2;")
        assert error.kind == DUPLICATE_DECLARATION

    def test_undeclared_name(self, analyze):
        error = analysis_error(analyze, "print y;")
        assert error.kind == UNDECLARED_NAME
        assert error.message == "y has not been declared"
        assert (error.span.start_line, error.span.start_col) == (1, 7)

    def test_variable_not_in_scope_of_its_initializer(self, analyze):
        error = analysis_error(analyze, "let x = x;")
        assert error.kind == UNDECLARED_NAME

    def test_undeclared_function(self, analyze):
        error = analysis_error(analyze, "print g(1);")
        assert error.kind == UNDECLARED_NAME
        assert error.message == "g has not been declared"

    def test_parameters_are_not_visible_outside(self, analyze):
        error = analysis_error(analyze, "function f(p) = p; print p;")
        assert error.kind == UNDECLARED_NAME

    def test_calling_a_variable(self, analyze):
        error = analysis_error(analyze, "let x = 1; print x(2);")
        assert error.kind == WRONG_ENTITY_KIND
        assert error.message == "x was expected to be a Function"

    def test_reading_a_function(self, analyze):
        error = analysis_error(analyze, "function f(a) = a; print f;")
        assert error.kind == WRONG_ENTITY_KIND
        assert error.message == "f was expected to be a Variable"

    def test_assigning_to_a_function(self, analyze):
        error = analysis_error(analyze, "print 1; sqrt = 2;")
        assert error.kind == WRONG_ENTITY_KIND

    def test_assigning_to_pi(self, analyze):
        error = analysis_error(analyze, "π = 3;")
        assert error.kind == READ_ONLY_ASSIGNMENT
        assert error.message == "π is read only"

    def test_assigning_to_a_parameter(self, parser):
        scope = scope_add(make_root_scope(), "x", Variable("x", read_only=True))
        assignment = parser.parse_string("x = 3;").children[0]
        with pytest.raises(CallaSemanticsError) as exc_info:
            analyze_statement(assignment, scope)
        assert exc_info.value.kind == READ_ONLY_ASSIGNMENT
        assert exc_info.value.message == "x is read only"

    def test_too_many_arguments(self, analyze):
        error = analysis_error(analyze, "function f(x) = 3 * x;\nprint f(2, 3);")
        assert error.kind == ARITY_MISMATCH
        assert error.message == "Expected 1 arg(s), found 2"
        assert (error.span.start_line, error.span.start_col) == (2, 8)

    def test_too_few_arguments_to_builtin(self, analyze):
        error = analysis_error(analyze, "print hypot(3);")
        assert error.kind == ARITY_MISMATCH
        assert error.message == "Expected 2 arg(s), found 1"

    def test_error_string_has_location(self, parser):
        with pytest.raises(CallaSemanticsError) as exc_info:
            analyze_program(parser.parse_string("print nope;", "m.calla"))
        assert str(exc_info.value) == "Semantics error at m.calla:1:7: nope has not been declared"

    def test_first_error_wins(self, analyze):
        error = analysis_error(analyze, "print a; print b;")
        assert error.message == "a has not been declared"


class TestScopesAndFactories:
    """Scope helpers and analyzer factories"""

    def test_scope_add_returns_new_scope(self):
        root = make_root_scope()
        variable = Variable("x")
        extended = scope_add(root, "x", variable)
        assert scope_lookup(extended, "x") is variable
        assert scope_lookup(root, "x") is None

    def test_root_scope_holds_standard_library(self):
        root = make_root_scope()
        for name, entity in STANDARD_LIBRARY.items():
            assert scope_lookup(root, name) is entity

    def test_analyzer_rejects_non_program(self, parser):
        with pytest.raises(ValueError):
            analyze_program(parser.parse_expression("1 + 2"))

    def test_create_analyzer(self, parser):
        analyzer = create_analyzer()
        program = analyzer(parser.parse_string("print 1;"))
        assert program.statements[0].argument == 1.0

    def test_debug_analyzer_prints_progress(self, parser, capsys):
        analyzer = create_debug_analyzer()
        analyzer(parser.parse_string("let x = 1;"))
        assert "Analyzing CST node: VARDEC" in capsys.readouterr().out
