"""Tests for SLL parsing and the program model."""

import logging

import pytest
from spsc import (
    Variable, Constructor, Pattern, FCall, GCall, FRule, GRule, Program,
    ParseError, parse_program, parse_exp, load_program,
)
from spsc.parser import tokenize


ADD = """
    gAdd(Z(), y) = y;
    gAdd(S(x), y) = S(gAdd(x, y));
"""


class TestTokenize:
    """Tests for the tokenizer."""

    def test_tokens(self):
        """Names and punctuation are separated, whitespace dropped."""
        kinds = [t[0] for t in tokenize("f(x) = x;")]
        assert kinds == ["name", "punct", "name", "punct", "punct", "name", "punct", "eof"]

    def test_comments_skipped(self):
        """Comments to end of line are dropped."""
        tokens = tokenize("# comment\nx // another\n")
        assert [t[1] for t in tokens] == ["x", ""]

    def test_bad_character(self):
        """Unknown characters raise ParseError."""
        with pytest.raises(ParseError):
            tokenize("f(x) = x + 1;")


class TestParseExp:
    """Tests for parsing expressions."""

    def test_variable(self):
        """Lower-case names are variables."""
        e = parse_exp("x")
        assert isinstance(e, Variable)
        assert e.name == "x"

    def test_constructor(self):
        """Upper-case names with parens are constructors."""
        e = parse_exp("Cons(x, Nil())")
        assert isinstance(e, Constructor)
        assert isinstance(e.args[1], Constructor)
        assert len(e.args[1].args) == 0

    def test_fcall_and_gcall(self):
        """f... and g... names with parens are calls."""
        e = parse_exp("fRev(gApp(xs, ys))")
        assert isinstance(e, FCall)
        assert isinstance(e.args[0], GCall)

    def test_call_like_variable(self):
        """A name starting with f or g but without parens is a variable."""
        e = parse_exp("C(foo, gx)")
        assert all(isinstance(a, Variable) for a in e.args)

    def test_whitespace_insignificant(self):
        """Whitespace between tokens is ignored."""
        assert str(parse_exp("  gAdd ( S( x ) ,\n y )")) == "gAdd(S(x), y)"

    def test_trailing_input(self):
        """Extra tokens after the expression are an error."""
        with pytest.raises(ParseError):
            parse_exp("x y")

    def test_unknown_call(self):
        """Only f- and g-names may be called."""
        with pytest.raises(ParseError):
            parse_exp("h(x)")

    def test_constructor_needs_parens(self):
        """A bare upper-case name is not an expression."""
        with pytest.raises(ParseError):
            parse_exp("Nil")

    def test_error_position(self):
        """Parse errors carry line and column."""
        with pytest.raises(ParseError) as info:
            parse_exp("C(x,\n  )")
        assert info.value.line == 2
        assert info.value.column == 3


class TestParseProgram:
    """Tests for parsing programs."""

    def test_frule(self):
        """An f-rule has a name, parameters and a body."""
        program = parse_program("fId(x) = x;")
        rule = program.f["fId"]
        assert isinstance(rule, FRule)
        assert [p.name for p in rule.params] == ["x"]
        assert str(rule.exp) == "x"

    def test_grule(self):
        """A g-rule has a pattern and extra parameters."""
        program = parse_program(ADD)
        rule = program.g["gAdd_S"]
        assert isinstance(rule, GRule)
        assert isinstance(rule.pattern, Pattern)
        assert str(rule.pattern) == "S(x)"
        assert [p.name for p in rule.params] == ["y"]

    def test_nullary_pattern(self):
        """Patterns may have no arguments."""
        program = parse_program("gNot(T()) = F(); gNot(F()) = T();")
        assert len(program.g["gNot_T"].pattern.args) == 0

    def test_empty_program(self):
        """An empty text is an empty program."""
        assert len(parse_program("  # nothing\n")) == 0

    def test_missing_semicolon(self):
        """Rules must end with ';'."""
        with pytest.raises(ParseError):
            parse_program("fId(x) = x")

    def test_pattern_args_are_variables(self):
        """Nested patterns are not allowed in g-rule heads."""
        with pytest.raises(ParseError):
            parse_program("gA(S(Z())) = Z();")

    def test_rule_needs_function_name(self):
        """Rules must define f- or g-functions."""
        with pytest.raises(ParseError):
            parse_program("hId(x) = x;")

    def test_round_trip(self):
        """Printing a program and parsing it again gives the same text."""
        program = parse_program(ADD + "fDouble(x) = gAdd(x, x);")
        assert str(parse_program(str(program))) == str(program)

    def test_load_program(self, tmp_path):
        """Programs load from files."""
        path = tmp_path / "add.sll"
        path.write_text(ADD)
        program = load_program(path)
        assert len(program) == 2
        assert "gAdd" in program


class TestProgramModel:
    """Tests for the Program indexes."""

    def test_indexes(self):
        """f, g and gs index the rules."""
        program = parse_program(ADD + "fTwo() = S(S(Z()));")
        assert set(program.f) == {"fTwo"}
        assert set(program.g) == {"gAdd_Z", "gAdd_S"}
        assert [r.pattern.name for r in program.gs["gAdd"]] == ["Z", "S"]

    def test_gs_keeps_definition_order(self):
        """gs lists g-rules in the order they were defined."""
        program = parse_program("gB(S(x)) = x; gB(Z()) = Z(); gB(T()) = Z();")
        assert [r.pattern.name for r in program.gs["gB"]] == ["S", "Z", "T"]

    def test_duplicate_frule_last_wins(self, caplog):
        """A repeated f-rule replaces the earlier one and logs a warning."""
        with caplog.at_level(logging.WARNING, logger="spsc.lang"):
            program = parse_program("fA(x) = x; fA(x) = Z();")
        assert str(program.f["fA"].exp) == "Z()"
        assert "Duplicate f-rule fA" in caplog.text

    def test_duplicate_grule_last_wins(self, caplog):
        """A repeated g-rule replaces the earlier one in g."""
        with caplog.at_level(logging.WARNING, logger="spsc.lang"):
            program = parse_program("gA(Z()) = A(); gA(Z()) = B();")
        assert str(program.g["gA_Z"].exp) == "B()"
        assert "Duplicate g-rule gA_Z" in caplog.text

    def test_not_a_rule(self):
        """Only rules can build a program."""
        with pytest.raises(TypeError):
            Program([Variable("x")])

    def test_contains(self):
        """'in' checks for defined function names."""
        program = parse_program(ADD)
        assert "gAdd" in program
        assert "fAdd" not in program
