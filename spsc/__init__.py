"""
SPSC - Simple Positive SuperCompiler

A supercompiler for SLL, a small first-order functional language with
f-rules, pattern-matching g-rules, constructors and variables.

Quick Start:
    from spsc import Supercompiler, parse_exp

    sc = Supercompiler.from_text('''
        gAdd(Z(), y) = y;
        gAdd(S(x), y) = S(gAdd(x, y));
    ''')

    tree = sc.build_tree(parse_exp("gAdd(a, b)"))
    print(tree)
    # |__gAdd(a, b)
    #      |__b  {a = Z()}
    #      |__S(gAdd(v_1, b))  {a = S(v_1)}
    #          |__gAdd(v_1, b)

SLL Syntax:
    f(x, y) = exp;          f-rule: function names start with f
    g(C(x, y), z) = exp;    g-rule: names start with g, dispatch on the
                            constructor of the first argument
    C(e1, e2), Nil()        constructors start with an upper-case letter
    x, acc                  variables start with a lower-case letter

Process Tree:
    Every leaf is driven (one evaluation step) until it is a variable, a
    nullary constructor, or a call already seen on the path from the root
    up to renaming. A call that is an instance of an ancestor call is
    folded into `let <bindings> in <ancestor call>`.
"""

__version__ = "0.1.0"
__author__ = "spinoza"

# Language
from .lang import (
    Variable,
    Constructor,
    Pattern,
    FCall,
    GCall,
    Let,
    FRule,
    GRule,
    Program,
    Expression,
)

# Term algebra
from .algebra import (
    Substitution,
    NoMatch,
    MatchResult,
    FreshNames,
    shell_equals,
    equals,
    subst_equals,
    apply_subst,
    match_against,
    instance_of,
    equiv,
    vars_of,
)

# Parsing
from .parser import (
    parse_program,
    parse_exp,
    load_program,
)

# Process trees
from .tree import (
    Node,
    Tree,
    format_contraction,
)

# Supercompiler
from .supercompiler import (
    Supercompiler,
    BuildStep,
    BuildTrace,
)

# Errors
from .errors import (
    SPSCError,
    ParseError,
    ConfigurationError,
    UnknownFunctionError,
    ArityError,
    NonExhaustiveMatchError,
    DrivingError,
    BuildAborted,
)

# Public API
__all__ = [
    # Version
    "__version__",
    # Language
    "Variable",
    "Constructor",
    "Pattern",
    "FCall",
    "GCall",
    "Let",
    "FRule",
    "GRule",
    "Program",
    "Expression",
    # Term algebra
    "Substitution",
    "NoMatch",
    "MatchResult",
    "FreshNames",
    "shell_equals",
    "equals",
    "subst_equals",
    "apply_subst",
    "match_against",
    "instance_of",
    "equiv",
    "vars_of",
    # Parsing
    "parse_program",
    "parse_exp",
    "load_program",
    # Process trees
    "Node",
    "Tree",
    "format_contraction",
    # Supercompiler
    "Supercompiler",
    "BuildStep",
    "BuildTrace",
    # Errors
    "SPSCError",
    "ParseError",
    "ConfigurationError",
    "UnknownFunctionError",
    "ArityError",
    "NonExhaustiveMatchError",
    "DrivingError",
    "BuildAborted",
]
