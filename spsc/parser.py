"""
SLL Parser and Program Loader

This module turns SLL source text into the AST of spsc.lang.

Grammar:
    program  := (frule | grule)* EOF
    frule    := f_name '(' vrb (',' vrb)* ')' '=' exp ';'
    grule    := g_name '(' ptr (',' vrb)* ')' '=' exp ';'
    exp      := ctr | fcall | gcall | vrb
    ctr      := c_name '(' exp (',' exp)* ')' | c_name '(' ')'
    fcall    := f_name '(' exp (',' exp)* ')'
    gcall    := g_name '(' exp (',' exp)* ')'
    ptr      := c_name '(' vrb (',' vrb)* ')' | c_name '(' ')'
    vrb      := v_name

    f_name: f\\w*    g_name: g\\w*    c_name: [A-Z]\\w*    v_name: [a-z]\\w*

A lower-case name followed by '(' is a call (f... or g...); without '('
it is a variable, so `foo` and `gx` are ordinary variable names.

Whitespace is insignificant. Comments run from '#' or '//' to the end
of the line.

Example program (natural-number addition):
    gAdd(Z(), y) = y;
    gAdd(S(x), y) = S(gAdd(x, y));
"""

import re
from pathlib import Path
from typing import List, Tuple, Union

from .errors import ParseError
from .lang import (
    Variable, Constructor, Pattern, FCall, GCall, FRule, GRule, Program,
    Expression,
)

_TOKEN_RE = re.compile(r"""
    (?P<skip>\s+|\#[^\n]*|//[^\n]*)
  | (?P<name>[A-Za-z]\w*)
  | (?P<punct>[(),=;])
""", re.VERBOSE)

Token = Tuple[str, str, int]  # (kind, text, position)


def tokenize(text: str) -> List[Token]:
    """
    Split SLL text into tokens, dropping whitespace and comments.

    The token list always ends with an ("eof", "", len(text)) token.
    """
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise ParseError(f"Unexpected character {text[pos]!r}", text, pos)
        kind = m.lastgroup
        if kind != "skip":
            tokens.append((kind, m.group(), pos))
        pos = m.end()
    tokens.append(("eof", "", len(text)))
    return tokens


def _is_fname(name: str) -> bool:
    return name.startswith("f")


def _is_gname(name: str) -> bool:
    return name.startswith("g")


def _is_cname(name: str) -> bool:
    return name[0].isupper()


def _is_vname(name: str) -> bool:
    return name[0].islower()


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    # ---- token helpers ----

    def peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def error(self, expected: str) -> ParseError:
        kind, value, pos = self.peek()
        found = "end of input" if kind == "eof" else repr(value)
        return ParseError(f"Expected {expected}, found {found}", self.text, pos)

    def expect(self, punct: str) -> None:
        kind, value, _ = self.peek()
        if kind != "punct" or value != punct:
            raise self.error(f"'{punct}'")
        self.index += 1

    def accept(self, punct: str) -> bool:
        kind, value, _ = self.peek()
        if kind == "punct" and value == punct:
            self.index += 1
            return True
        return False

    def name(self, what: str, predicate) -> str:
        kind, value, _ = self.peek()
        if kind != "name" or not predicate(value):
            raise self.error(what)
        self.index += 1
        return value

    def separated(self, item, closing: str = ")") -> list:
        """Parse `item (',' item)*` up to `closing`; the list may be empty."""
        items = []
        if self.accept(closing):
            return items
        items.append(item())
        while self.accept(","):
            items.append(item())
        self.expect(closing)
        return items

    # ---- productions ----

    def vrb(self) -> Variable:
        name = self.name("variable name", _is_vname)
        if self.peek()[:2] == ("punct", "("):
            raise self.error("variable name (not a call)")
        return Variable(name)

    def ptr(self) -> Pattern:
        name = self.name("constructor pattern", _is_cname)
        self.expect("(")
        return Pattern(name, self.separated(self.vrb))

    def exp(self) -> Expression:
        kind, value, _ = self.peek()
        if kind != "name":
            raise self.error("expression")
        is_call = self.peek(1)[:2] == ("punct", "(")

        if _is_cname(value):
            self.index += 1
            self.expect("(")
            return Constructor(value, self.separated(self.exp))
        if is_call and _is_fname(value):
            self.index += 2
            return FCall(value, self.separated(self.exp))
        if is_call and _is_gname(value):
            self.index += 2
            return GCall(value, self.separated(self.exp))
        if is_call:
            raise self.error("f- or g-function name before '('")
        return self.vrb()

    def rule(self) -> Union[FRule, GRule]:
        kind, value, _ = self.peek()
        if kind == "name" and _is_fname(value):
            self.index += 1
            self.expect("(")
            params = self.separated(self.vrb)
            self.expect("=")
            body = self.exp()
            self.expect(";")
            return FRule(value, params, body)
        if kind == "name" and _is_gname(value):
            self.index += 1
            self.expect("(")
            pattern = self.ptr()
            params = []
            while self.accept(","):
                params.append(self.vrb())
            self.expect(")")
            self.expect("=")
            body = self.exp()
            self.expect(";")
            return GRule(value, pattern, params, body)
        raise self.error("f-rule or g-rule")

    def program(self) -> Program:
        rules = []
        while self.peek()[0] != "eof":
            rules.append(self.rule())
        return Program(rules)

    def only_exp(self) -> Expression:
        e = self.exp()
        if self.peek()[0] != "eof":
            raise self.error("end of input")
        return e


def parse_program(text: str) -> Program:
    """
    Parse SLL program text.

    Examples:
        parse_program("fId(x) = x;").f["fId"]
        parse_program("gNot(T()) = F(); gNot(F()) = T();").gs["gNot"]

    Raises:
        ParseError: if the text is not a valid program
    """
    return _Parser(text).program()


def parse_exp(text: str) -> Expression:
    """
    Parse a single SLL expression.

    Examples:
        "fId(A())"        -> FCall('fId(A())')
        "gAdd(S(Z()), y)" -> GCall('gAdd(S(Z()), y)')

    Raises:
        ParseError: if the text is not exactly one expression
    """
    return _Parser(text).only_exp()


def load_program(path: Union[str, Path]) -> Program:
    """
    Load a program from an .sll file.

    Args:
        path: Path to the program file

    Returns:
        The parsed Program
    """
    path = Path(path)
    return parse_program(path.read_text())
