"""
Exception taxonomy for SPSC.

    SPSCError
     +-- ParseError              malformed SLL source text
     +-- ConfigurationError      program does not support the call being driven
     |    +-- UnknownFunctionError
     |    +-- ArityError
     |    +-- NonExhaustiveMatchError
     +-- DrivingError            an expression kind that has no driving step
     +-- BuildAborted            construction stopped before a fixpoint

ParseError and ConfigurationError also derive from ValueError, so callers
that only care about "bad input" can catch that.
"""

from typing import Optional


class SPSCError(Exception):
    """Base class for all SPSC errors."""


class ParseError(SPSCError, ValueError):
    """Source text does not follow the SLL grammar."""

    def __init__(self, message: str, text: str = "", position: int = 0):
        self.text = text
        self.position = position
        self.line = text.count("\n", 0, position) + 1
        self.column = position - (text.rfind("\n", 0, position) + 1) + 1
        excerpt = text[position:position + 10].replace("\n", " ")
        super().__init__(
            f"{message} at line {self.line}, column {self.column} "
            f"(near '{excerpt} ...')"
        )


class ConfigurationError(SPSCError, ValueError):
    """The program cannot drive the given expression."""

    def __init__(self, message: str, expression=None):
        self.expression = expression
        if expression is not None:
            message = f"{message} in {expression}"
        super().__init__(message)


class UnknownFunctionError(ConfigurationError):
    """Call to an f- or g-function with no defining rule."""


class ArityError(ConfigurationError):
    """Call whose argument count disagrees with its rule."""


class NonExhaustiveMatchError(ConfigurationError):
    """Constructor scrutinee whose tag has no matching g-rule."""


class DrivingError(SPSCError):
    """Expression kind that the driving step does not handle."""


class BuildAborted(SPSCError):
    """
    Tree construction stopped before every leaf was processed.

    Raised when the step limit is reached, or when the configurations
    nest too deeply to be walked. The partially built tree is kept for
    inspection; it is never a valid process tree.
    """

    def __init__(self, steps: int, tree=None, limit: Optional[int] = None,
                 reason: Optional[str] = None):
        self.steps = steps
        self.tree = tree
        self.limit = limit
        self.reason = reason or f"limit: {limit}"
        super().__init__(f"Aborted after {steps} steps ({self.reason})")
