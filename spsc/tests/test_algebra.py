"""Tests for the term algebra."""

import pytest
from spsc import (
    Variable, Constructor, Pattern, FCall, GCall, Let,
    Substitution, NoMatch, FreshNames,
    shell_equals, equals, subst_equals, apply_subst,
    match_against, instance_of, equiv, vars_of, parse_exp,
)


class TestSubstitution:
    """Tests for the Substitution class and NoMatch singleton."""

    def test_creation_from_pairs(self):
        """Substitution can be created from (name, expression) pairs."""
        s = Substitution([("x", Constructor("A")), ("y", Variable("z"))])
        assert str(s["x"]) == "A()"
        assert str(s["y"]) == "z"

    def test_creation_from_dict(self):
        """Substitution can be created from a mapping."""
        s = Substitution({"x": Constructor("A")})
        assert "x" in s
        assert len(s) == 1

    def test_getitem_missing_raises(self):
        """Accessing a missing name raises KeyError."""
        s = Substitution([("x", Constructor("A"))])
        with pytest.raises(KeyError):
            _ = s["y"]

    def test_get_with_default(self):
        """get() returns default for missing names."""
        s = Substitution()
        assert s.get("x") is None
        assert s.get("x", 42) == 42

    def test_empty_is_truthy(self):
        """Substitutions are truthy even when empty."""
        assert bool(Substitution())

    def test_insertion_order(self):
        """Names keep the order they were bound in."""
        s = Substitution([("b", Variable("x")), ("a", Variable("y"))])
        assert list(s) == ["b", "a"]
        assert [n for n, _ in s.to_bindings()] == ["b", "a"]

    def test_equality_is_structural(self):
        """Substitutions compare by equals on their values."""
        s1 = Substitution([("x", parse_exp("S(Z())"))])
        s2 = Substitution([("x", parse_exp("S(Z())"))])
        s3 = Substitution([("x", parse_exp("Z()"))])
        assert s1 == s2
        assert s1 != s3

    def test_nomatch_is_falsy(self):
        """NoMatch is falsy and empty."""
        assert not NoMatch
        assert len(NoMatch) == 0
        assert "x" not in NoMatch
        assert NoMatch.get("x", 1) == 1
        assert list(NoMatch) == []

    def test_nomatch_getitem_raises(self):
        """Indexing NoMatch raises KeyError."""
        with pytest.raises(KeyError):
            _ = NoMatch["x"]

    def test_nomatch_repr(self):
        """NoMatch has a readable repr."""
        assert repr(NoMatch) == "NoMatch"


class TestEquality:
    """Tests for shell_equals and equals."""

    def test_shell_equals_ignores_args(self):
        """Same kind and name is enough for shell equality."""
        assert shell_equals(parse_exp("fA(x)"), parse_exp("fA(B(), C())"))

    def test_shell_equals_kind_matters(self):
        """A constructor and a pattern with the same name differ."""
        assert not shell_equals(Constructor("A"), Pattern("A"))
        assert not shell_equals(FCall("f"), GCall("f"))

    def test_shell_equals_name_matters(self):
        """Different names are not shell-equal."""
        assert not shell_equals(Variable("x"), Variable("y"))

    def test_equals_nested(self):
        """Structurally identical terms are equal."""
        assert equals(parse_exp("gAdd(S(x), fB(y))"), parse_exp("gAdd(S(x), fB(y))"))

    def test_equals_no_renaming(self):
        """Equality does not rename variables."""
        assert not equals(parse_exp("fA(x)"), parse_exp("fA(y)"))

    def test_equals_arity(self):
        """Argument counts must agree."""
        assert not equals(parse_exp("C(x)"), parse_exp("C(x, y)"))

    def test_equals_let(self):
        """Let compares body and bindings."""
        l1 = Let(parse_exp("fA(x)"), [("x", parse_exp("B()"))])
        l2 = Let(parse_exp("fA(x)"), [("x", parse_exp("B()"))])
        l3 = Let(parse_exp("fA(x)"), [("x", parse_exp("C()"))])
        assert equals(l1, l2)
        assert not equals(l1, l3)
        assert not equals(l1, parse_exp("fA(x)"))

    def test_subst_equals_nomatch(self):
        """NoMatch only equals NoMatch."""
        assert subst_equals(NoMatch, NoMatch)
        assert not subst_equals(NoMatch, Substitution())

    def test_subst_equals_different_names(self):
        """Substitutions over different names differ."""
        assert not subst_equals(
            Substitution([("x", Variable("a"))]),
            Substitution([("y", Variable("a"))]),
        )


class TestApplySubst:
    """Tests for apply_subst."""

    def test_bound_variable(self):
        """A bound variable is replaced by its value."""
        result = apply_subst(Variable("x"), {"x": Constructor("A")})
        assert str(result) == "A()"

    def test_unbound_variable(self):
        """An unbound variable is kept."""
        x = Variable("x")
        assert apply_subst(x, {}) is x

    def test_nested(self):
        """Substitution reaches all arguments."""
        result = apply_subst(parse_exp("gAdd(x, S(x), y)"),
                             Substitution([("x", parse_exp("Z()"))]))
        assert str(result) == "gAdd(Z(), S(Z()), y)"

    def test_preserves_kind(self):
        """Kinds and names are preserved while rebuilding."""
        result = apply_subst(parse_exp("fA(x)"), {"x": Variable("y")})
        assert isinstance(result, FCall)
        assert result.name == "fA"

    def test_does_not_mutate(self):
        """The original expression is unchanged."""
        e = parse_exp("C(x)")
        apply_subst(e, {"x": Constructor("A")})
        assert str(e) == "C(x)"

    def test_let(self):
        """Let body and bound values are substituted."""
        e = Let(parse_exp("fA(x)"), [("x", parse_exp("S(y)"))])
        result = apply_subst(e, {"y": Constructor("Z")})
        assert str(result) == "let x=S(Z()) in fA(x)"

    def test_simultaneous(self):
        """Substitution is simultaneous, not sequential."""
        result = apply_subst(parse_exp("C(x, y)"), {"x": Variable("y"), "y": Variable("x")})
        assert str(result) == "C(y, x)"


class TestMatchAgainst:
    """Tests for one-directional matching."""

    def test_variable_matches_anything(self):
        """A pattern variable matches any expression."""
        s = match_against(Variable("x"), parse_exp("S(Z())"))
        assert str(s["x"]) == "S(Z())"

    def test_structural_match(self):
        """Arguments are matched pairwise."""
        s = match_against(parse_exp("gAdd(x, y)"), parse_exp("gAdd(S(a), b)"))
        assert str(s["x"]) == "S(a)"
        assert str(s["y"]) == "b"

    def test_repeated_variable_consistent(self):
        """A repeated pattern variable needs equal candidates."""
        assert match_against(parse_exp("fA(x, x)"), parse_exp("fA(B(), B())"))
        assert match_against(parse_exp("fA(x, x)"), parse_exp("fA(B(), C())")) is NoMatch

    def test_candidate_variable_fails(self):
        """A candidate variable cannot match a concrete pattern."""
        assert match_against(parse_exp("fA(S(x))"), parse_exp("fA(y)")) is NoMatch

    def test_shell_mismatch(self):
        """Different names fail."""
        assert match_against(parse_exp("fA(x)"), parse_exp("fB(x)")) is NoMatch

    def test_arity_mismatch(self):
        """Different argument counts fail."""
        assert match_against(parse_exp("C(x)"), parse_exp("C(A(), B())")) is NoMatch

    def test_ground_match_is_empty(self):
        """Matching a ground term against itself binds nothing but succeeds."""
        s = match_against(parse_exp("C(A())"), parse_exp("C(A())"))
        assert s is not NoMatch
        assert len(s) == 0

    def test_soundness(self):
        """Applying the match result to the pattern gives the candidate."""
        pattern = parse_exp("gF(x, C(y, x))")
        candidate = parse_exp("gF(S(z), C(fK(w), S(z)))")
        s = match_against(pattern, candidate)
        assert equals(apply_subst(pattern, s), candidate)

    def test_let_against_let(self):
        """Lets match when binding names agree."""
        l1 = Let(parse_exp("fA(x)"), [("x", Variable("p"))])
        l2 = Let(parse_exp("fA(x)"), [("x", parse_exp("B()"))])
        s = match_against(l1, l2)
        assert str(s["p"]) == "B()"
        assert match_against(l1, parse_exp("fA(x)")) is NoMatch


class TestInstanceAndEquiv:
    """Tests for instance_of and equiv."""

    def test_instance_of(self):
        """A specialization is an instance of the general term."""
        assert instance_of(parse_exp("fA(x)"), parse_exp("fA(S(y))"))
        assert not instance_of(parse_exp("fA(S(y))"), parse_exp("fA(x)"))

    def test_equiv_renaming(self):
        """Terms equal up to renaming are equivalent."""
        assert equiv(parse_exp("gAdd(x, y)"), parse_exp("gAdd(a, b)"))

    def test_equiv_not_for_instances(self):
        """A strict instance is not equivalent."""
        assert not equiv(parse_exp("gAdd(x, y)"), parse_exp("gAdd(x, x)"))
        assert not equiv(parse_exp("gAdd(x, x)"), parse_exp("gAdd(x, y)"))

    def test_equiv_symmetric(self):
        """equiv gives the same answer both ways."""
        e1, e2 = parse_exp("fA(x, S(y))"), parse_exp("fA(u, S(u))")
        assert equiv(e1, e2) == equiv(e2, e1)


class TestVarsOf:
    """Tests for vars_of."""

    def test_order_of_first_occurrence(self):
        """Names appear once, in order of first occurrence."""
        assert vars_of(parse_exp("gAdd(y, C(x, y), z)")) == ["y", "x", "z"]

    def test_ground(self):
        """Ground terms have no variables."""
        assert vars_of(parse_exp("S(Z())")) == []


class TestFreshNames:
    """Tests for the fresh-name supply."""

    def test_sequence(self):
        """Names are v_1, v_2, ..."""
        names = FreshNames()
        assert names.fresh_var().name == "v_1"
        assert names.fresh_var().name == "v_2"
        assert names.issued == 2

    def test_unique(self):
        """No name is issued twice."""
        names = FreshNames()
        issued = [names.fresh_var().name for _ in range(100)]
        assert len(set(issued)) == 100

    def test_independent_supplies(self):
        """Separate supplies do not share a counter."""
        a, b = FreshNames(), FreshNames()
        a.fresh_var()
        assert b.fresh_var().name == "v_1"

    def test_custom_prefix(self):
        """The prefix is configurable."""
        assert FreshNames(prefix="w").fresh_var().name == "w1"

    def test_reserved_names_skipped(self):
        """Reserved names are never issued."""
        names = FreshNames()
        names.reserve(["v_1", "v_3"])
        assert [names.fresh_var().name for _ in range(3)] == ["v_2", "v_4", "v_5"]
        assert names.issued == 5


class TestCachedShape:
    """Size and groundness are computed at construction."""

    def test_size(self):
        """size counts every node of the term."""
        assert parse_exp("x").size == 1
        assert parse_exp("gAdd(S(x), Z())").size == 4

    def test_ground(self):
        """Only variable-free terms are ground."""
        assert parse_exp("S(Z())").ground
        assert not parse_exp("S(x)").ground

    def test_sizes_differ_never_equiv(self):
        """Terms of different size are neither equal nor equivalent."""
        assert not equals(parse_exp("S(Z())"), parse_exp("S(S(Z()))"))
        assert not equiv(parse_exp("fUp(x)"), parse_exp("fUp(S(x))"))
        assert not match_against(parse_exp("S(Z())"), parse_exp("S(S(Z()))"))
