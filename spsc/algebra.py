"""
Term algebra for SLL expressions.

This module provides structural equality, one-directional matching,
substitution and fresh-name generation over the expression classes in
spsc.lang.

Matching is one-directional: in match_against(pattern, exp) only the
variables of `pattern` may be bound. A variable of `exp` never matches a
non-variable of `pattern`.

    s = match_against(FCall("f", [x, x]), FCall("f", [A(), A()]))
    s["x"]                       # => Constructor('A()')
    match_against(FCall("f", [x, x]), FCall("f", [A(), B()]))
                                 # => NoMatch
"""

from typing import Dict, Iterable, List, Mapping, Set, Union

from .lang import Variable, Let, Expression


# ============================================================
# Substitution Class - Dict-like interface for match results
# ============================================================

class Substitution:
    """
    Mapping from variable names to expressions.

    Returned by match_against on success. Substitutions are always
    truthy, even when empty; a failed match returns NoMatch, which is
    falsy:

        if subst := match_against(pattern, exp):
            body = apply_subst(pattern, subst)

    Substitutions are never mutated once built; apply_subst and
    match_against always produce new objects.

    Examples:
        s = Substitution([("x", Constructor("A"))])
        s["x"]        # => Constructor('A()')
        "y" in s      # => False
        s.items()     # insertion ordered
    """

    __slots__ = ('_dict',)

    def __init__(self, pairs: Union[Iterable, Mapping, None] = None):
        """Initialize from (name, expression) pairs or a mapping."""
        if pairs is None:
            pairs = ()
        elif isinstance(pairs, (Mapping, Substitution)):
            pairs = pairs.items()
        self._dict: Dict[str, Expression] = {name: value for name, value in pairs}

    def __bool__(self) -> bool:
        """Substitutions are always truthy (use NoMatch for failed matches)."""
        return True

    def __getitem__(self, name: str) -> Expression:
        return self._dict[name]

    def get(self, name: str, default=None):
        return self._dict.get(name, default)

    def __contains__(self, name: str) -> bool:
        return name in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={value}" for name, value in self._dict.items())
        return f"Substitution({{{inner}}})"

    def __eq__(self, other):
        if isinstance(other, Substitution):
            return subst_equals(self, other)
        return False

    __hash__ = None

    def to_dict(self) -> Dict[str, Expression]:
        """Convert to a plain dictionary."""
        return self._dict.copy()

    def to_bindings(self) -> List[tuple]:
        """(name, expression) pairs in binding order, as used by Let."""
        return list(self._dict.items())


class _NoMatch:
    """
    Singleton representing a failed match.

    NoMatch is falsy and behaves like an empty substitution for lookups.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __getitem__(self, name: str):
        raise KeyError(f"NoMatch has no binding for '{name}'")

    def get(self, name: str, default=None):
        return default

    def __contains__(self, name: str) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter([])


# Singleton instance
NoMatch = _NoMatch()

MatchResult = Union[Substitution, _NoMatch]


# ============================================================
# Equality
# ============================================================

def shell_equals(e1: Expression, e2: Expression) -> bool:
    """Same kind and same name; arguments are not inspected."""
    return e1.kind == e2.kind and getattr(e1, "name", None) == getattr(e2, "name", None)


def _lets_equal(l1: Let, l2: Let) -> bool:
    if len(l1.bindings) != len(l2.bindings):
        return False
    for (n1, v1), (n2, v2) in zip(l1.bindings, l2.bindings):
        if n1 != n2 or not equals(v1, v2):
            return False
    return equals(l1.exp, l2.exp)


def equals(e1: Expression, e2: Expression) -> bool:
    """
    Structural equality, no renaming.

    Args:
        e1: First expression
        e2: Second expression

    Returns:
        True if both have the same kind and name, and all arguments (or,
        for Let, body and bindings) are equal in order
    """
    if e1.size != e2.size:
        return False
    if isinstance(e1, Let) or isinstance(e2, Let):
        return isinstance(e1, Let) and isinstance(e2, Let) and _lets_equal(e1, e2)
    if not shell_equals(e1, e2):
        return False
    if len(e1.args) != len(e2.args):
        return False
    return all(equals(a1, a2) for a1, a2 in zip(e1.args, e2.args))


def subst_equals(s1: MatchResult, s2: MatchResult) -> bool:
    """True if both bind the same names to equal expressions (NoMatch only equals NoMatch)."""
    if s1 is NoMatch or s2 is NoMatch:
        return s1 is s2
    if set(s1.keys()) != set(s2.keys()):
        return False
    return all(equals(s1[name], s2[name]) for name in s1)


# ============================================================
# Substitution
# ============================================================

def replace_args(exp: Expression, args: Iterable[Expression]) -> Expression:
    """Rebuild a name(args...) expression of the same kind with new arguments."""
    return type(exp)(exp.name, args)


def apply_subst(exp: Expression, subst: Mapping) -> Expression:
    """
    Apply a substitution to an expression.

    Variables bound in `subst` are replaced by their values; unbound
    variables are kept. `exp` itself is never modified.

    Args:
        exp: The expression to rewrite
        subst: Substitution or plain dict from names to expressions

    Returns:
        A new expression
    """
    if isinstance(exp, Variable):
        if exp.name in subst:
            return subst[exp.name]
        return exp
    if isinstance(exp, Let):
        return Let(
            apply_subst(exp.exp, subst),
            [(name, apply_subst(value, subst)) for name, value in exp.bindings],
        )
    return replace_args(exp, [apply_subst(arg, subst) for arg in exp.args])


# ============================================================
# Matching
# ============================================================

def extend_subst(var: Variable, exp: Expression, acc: Dict[str, Expression]) -> bool:
    """
    Bind `var` to `exp` in `acc`.

    A variable that is already bound must be bound to an equal
    expression; otherwise the match fails.
    """
    if var.name in acc:
        return equals(acc[var.name], exp)
    acc[var.name] = exp
    return True


def _match(e1: Expression, e2: Expression, acc: Dict[str, Expression]) -> bool:
    if isinstance(e1, Variable):
        return extend_subst(e1, e2, acc)
    if isinstance(e2, Variable):
        return False
    # Instances are never smaller than their pattern.
    if e2.size < e1.size:
        return False

    if isinstance(e1, Let) or isinstance(e2, Let):
        if not (isinstance(e1, Let) and isinstance(e2, Let)):
            return False
        if [n for n, _ in e1.bindings] != [n for n, _ in e2.bindings]:
            return False
        for (_, v1), (_, v2) in zip(e1.bindings, e2.bindings):
            if not _match(v1, v2, acc):
                return False
        return _match(e1.exp, e2.exp, acc)

    if not shell_equals(e1, e2) or len(e1.args) != len(e2.args):
        return False
    for a1, a2 in zip(e1.args, e2.args):
        if not _match(a1, a2, acc):
            return False
    return True


def match_against(e1: Expression, e2: Expression) -> MatchResult:
    """
    Match pattern `e1` against expression `e2`.

    Args:
        e1: The pattern; its variables may be bound
        e2: The candidate expression

    Returns:
        Substitution s with apply_subst(e1, s) equal to e2, or NoMatch
    """
    if e1.ground and e1.size != e2.size:
        return NoMatch
    acc: Dict[str, Expression] = {}
    if _match(e1, e2, acc):
        return Substitution(acc)
    return NoMatch


def instance_of(e1: Expression, e2: Expression) -> bool:
    """True if `e2` is an instance of `e1`."""
    return match_against(e1, e2) is not NoMatch


def equiv(e1: Expression, e2: Expression) -> bool:
    """True if each expression is an instance of the other (equal up to renaming)."""
    return instance_of(e1, e2) and instance_of(e2, e1)


def vars_of(exp: Expression) -> List[str]:
    """
    Variable names occurring in an expression, in order of first occurrence.

    Let binding names are not counted, only the variables in its body
    and bound values.
    """
    seen: Dict[str, None] = {}
    stack = [exp]
    while stack:
        e = stack.pop()
        if isinstance(e, Variable):
            seen.setdefault(e.name)
        elif isinstance(e, Let):
            stack.extend(reversed([e.exp] + [value for _, value in e.bindings]))
        else:
            stack.extend(reversed(e.args))
    return list(seen)


# ============================================================
# Fresh Names
# ============================================================

class FreshNames:
    """
    Supply of variable names never issued before by this supply.

    Each supercompiler owns one supply, so independent runs do not share
    a counter. Names already used by a program or an expression are
    reserved and skipped, so a fresh variable never captures one of them.

        names = FreshNames()
        names.reserve(["v_1"])
        names.fresh_var()   # => Variable('v_2')
        names.fresh_var()   # => Variable('v_3')
    """

    def __init__(self, prefix: str = "v_", start: int = 0):
        self.prefix = prefix
        self._counter = start
        self._reserved: Set[str] = set()

    def reserve(self, names: Iterable[str]) -> None:
        """Never issue any of `names`."""
        self._reserved.update(names)

    def fresh_var(self) -> Variable:
        """Return a Variable with the next unused name."""
        self._counter += 1
        while f"{self.prefix}{self._counter}" in self._reserved:
            self._counter += 1
        return Variable(f"{self.prefix}{self._counter}")

    @property
    def issued(self) -> int:
        """Number of the last name issued."""
        return self._counter

    def __repr__(self) -> str:
        return f"FreshNames(prefix={self.prefix!r}, issued={self._counter})"
