"""
SLL abstract syntax and program model.

SLL is a first-order functional language with two kinds of function
definitions:

    f-rules   f(x1, ..., xn) = body;           called with FCall
    g-rules   g(C(y1, ..., ym), x1, ..., xn) = body;
                                               called with GCall, dispatch
                                               on the constructor of the
                                               first argument

Expressions are Variable, Constructor, FCall, GCall and Let. Pattern only
appears in g-rule heads and in process-tree contractions.

Every expression kind except Let exposes `name` and `args`, so the term
algebra can walk arguments without caring about the kind. Let carries
`exp` and `bindings` instead.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


def _call_str(name: str, args: Sequence) -> str:
    return name + "(" + ", ".join(str(a) for a in args) + ")"


class Variable:
    """A variable occurrence."""

    __slots__ = ("name", "args")
    kind = "Variable"
    size = 1
    ground = False

    def __init__(self, name: str):
        self.name = name
        self.args: Tuple = ()

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Variable({self.name!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "name": self.name}


class _Applied:
    """
    Common shape of name(args...) expressions.

    `size` (node count) and `ground` (no variables) are computed once at
    construction from the arguments, so the term algebra can reject
    mismatches without walking deep terms.
    """

    __slots__ = ("name", "args", "size", "ground")
    kind = ""

    def __init__(self, name: str, args: Sequence = ()):
        self.name = name
        self.args = tuple(args)
        self.size = 1 + sum(a.size for a in self.args)
        self.ground = all(a.ground for a in self.args)

    def __str__(self) -> str:
        return _call_str(self.name, self.args)

    def __repr__(self) -> str:
        return f"{self.kind}({str(self)!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "args": [a.to_dict() for a in self.args],
        }


class Constructor(_Applied):
    """Data constructor application, e.g. Cons(x, Nil())."""

    __slots__ = ()
    kind = "Constructor"


class Pattern(_Applied):
    """Constructor pattern in a g-rule head; arguments are Variables."""

    __slots__ = ()
    kind = "Pattern"


class FCall(_Applied):
    """Call of an f-function."""

    __slots__ = ()
    kind = "FCall"


class GCall(_Applied):
    """Call of a g-function; the first argument is the scrutinee."""

    __slots__ = ()
    kind = "GCall"


class Let:
    """
    let x1=e1, ..., xn=en in exp

    Produced by folding: `exp` is an ancestor configuration and the
    bindings say how the folded node specializes it.
    """

    __slots__ = ("exp", "bindings", "size", "ground")
    kind = "Let"

    def __init__(self, exp, bindings: Sequence[Tuple[str, Any]] = ()):
        self.exp = exp
        self.bindings = tuple((name, value) for name, value in bindings)
        self.size = 1 + exp.size + sum(value.size for _, value in self.bindings)
        self.ground = exp.ground and all(value.ground for _, value in self.bindings)

    def __str__(self) -> str:
        pairs = ", ".join(f"{name}={value}" for name, value in self.bindings)
        return f"let {pairs} in {self.exp}"

    def __repr__(self) -> str:
        return f"Let({str(self)!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "exp": self.exp.to_dict(),
            "bindings": [[name, value.to_dict()] for name, value in self.bindings],
        }


Expression = Union[Variable, Constructor, Pattern, FCall, GCall, Let]


# ============================================================
# Rules and Programs
# ============================================================

class FRule:
    """f(params...) = exp;"""

    __slots__ = ("name", "params", "exp")
    kind = "FRule"

    def __init__(self, name: str, params: Sequence[Variable], exp: Expression):
        self.name = name
        self.params = tuple(params)
        self.exp = exp

    def __str__(self) -> str:
        return f"{_call_str(self.name, self.params)} = {self.exp};"

    def __repr__(self) -> str:
        return f"FRule({str(self)!r})"


class GRule:
    """g(Pattern(...), params...) = exp;"""

    __slots__ = ("name", "pattern", "params", "exp")
    kind = "GRule"

    def __init__(self, name: str, pattern: Pattern,
                 params: Sequence[Variable], exp: Expression):
        self.name = name
        self.pattern = pattern
        self.params = tuple(params)
        self.exp = exp

    @property
    def key(self) -> str:
        """Index key in Program.g, e.g. "gAdd_Z"."""
        return f"{self.name}_{self.pattern.name}"

    def __str__(self) -> str:
        return f"{_call_str(self.name, (self.pattern,) + self.params)} = {self.exp};"

    def __repr__(self) -> str:
        return f"GRule({str(self)!r})"


RuleType = Union[FRule, GRule]


class Program:
    """
    An SLL program: the rule list plus three read-only indexes.

        f:  name -> FRule
        g:  "name_Cname" -> GRule
        gs: name -> [GRule, ...] in definition order

    A later rule with the same key replaces an earlier one in `f` and `g`
    and is logged as a warning. `gs` keeps every g-rule in definition
    order, since it drives the order of case-split branches.

    Example:
        program = Program([
            FRule("fId", [Variable("x")], Variable("x")),
        ])
        program.f["fId"]  # => FRule('fId(x) = x;')
    """

    def __init__(self, rules: Optional[Sequence[RuleType]] = None):
        self.rules: List[RuleType] = list(rules or [])
        self.f: Dict[str, FRule] = {}
        self.g: Dict[str, GRule] = {}
        self.gs: Dict[str, List[GRule]] = {}

        for rule in self.rules:
            if isinstance(rule, FRule):
                if rule.name in self.f:
                    logger.warning(f"Duplicate f-rule {rule.name}: later definition wins")
                self.f[rule.name] = rule
            elif isinstance(rule, GRule):
                if rule.key in self.g:
                    logger.warning(f"Duplicate g-rule {rule.key}: later definition wins")
                self.g[rule.key] = rule
                self.gs.setdefault(rule.name, []).append(rule)
            else:
                raise TypeError(f"Not a rule: {rule!r}")

    def __str__(self) -> str:
        return "\n".join(str(rule) for rule in self.rules)

    def __repr__(self) -> str:
        return f"Program({len(self.rules)} rules)"

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __contains__(self, name: str) -> bool:
        """True if an f- or g-function with this name is defined."""
        return name in self.f or name in self.gs
