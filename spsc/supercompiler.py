"""
Driving and process-tree construction for SPSC.

The Supercompiler drives an SLL expression step by step, growing a
process tree until every leaf is processed:

    sc = Supercompiler.from_text('''
        gAdd(Z(), y) = y;
        gAdd(S(x), y) = S(gAdd(x, y));
    ''')
    tree = sc.build_tree(parse_exp("gAdd(gAdd(a, b), c)"))
    print(tree)

One growth step takes the first unprocessed leaf (pre-order) and either

    fold:   an ancestor of the same kind generalizes the leaf; the leaf is
            replaced by `let <match substitution> in <ancestor expression>`
    drive:  the leaf gets one child per result of Supercompiler.drive

Only f- and g-calls are fold candidates.

Tracing:
    Use build_tree(exp, trace=True) to get a BuildTrace of every step,
    or pass on_step=callback to watch the tree grow.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from .algebra import (
    FreshNames, NoMatch, Substitution, MatchResult, apply_subst, match_against,
    vars_of,
)
from .errors import (
    ArityError, BuildAborted, DrivingError, NonExhaustiveMatchError,
    UnknownFunctionError,
)
from .lang import (
    Variable, Constructor, Pattern, FCall, GCall, Let, GRule, Program, Expression,
)
from .parser import load_program, parse_program
from .tree import Contraction, Node, Tree, format_contraction

logger = logging.getLogger(__name__)

DriveStep = Tuple[Expression, Optional[Contraction]]
StepCallback = Callable[["BuildStep", Tree], None]


def _rule_vars(program: Program) -> List[str]:
    """Every variable name a rule of `program` mentions."""
    names: List[str] = []
    for rule in program:
        if isinstance(rule, GRule):
            names.extend(v.name for v in rule.pattern.args)
        names.extend(v.name for v in rule.params)
        names.extend(vars_of(rule.exp))
    return names


class BuildStep:
    """A single growth step: a fold or a drive of one leaf."""

    def __init__(self, index: int, action: str, before: Expression,
                 results: List[DriveStep], tree_text: Optional[str] = None):
        self.index = index
        self.action = action        # "fold" or "drive"
        self.before = before
        self.results = results
        self.tree_text = tree_text

    def __repr__(self) -> str:
        if self.action == "fold":
            return f"fold: {self.before} => {self.results[0][0]}"
        parts = []
        for exp, contraction in self.results:
            if contraction is not None:
                parts.append(f"{exp} {{{format_contraction(contraction)}}}")
            else:
                parts.append(str(exp))
        return f"drive: {self.before} => [{', '.join(parts)}]"

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "index": self.index,
            "action": self.action,
            "before": str(self.before),
            "results": [
                {"exp": str(exp), "contraction": format_contraction(contraction) or None}
                for exp, contraction in self.results
            ],
        }


class BuildTrace:
    """
    A trace of all growth steps of one build_tree run.

    Provides multiple formatting options:
        - Default repr: verbose multi-line format
        - format("compact"): single line summary
        - format("steps"): one line per step
        - format("trees"): the whole tree after every step
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[BuildStep] = []
        self.initial: Optional[Expression] = None
        self.tree: Optional[Tree] = None

    def add_step(self, step: BuildStep):
        self.steps.append(step)

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace in different styles.

        Args:
            style: One of "verbose", "compact", "steps", "trees"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            counts = self.action_counts()
            size = self.tree.size() if self.tree is not None else 0
            return (f"{self.initial} --[{counts.get('drive', 0)} drives, "
                    f"{counts.get('fold', 0)} folds]--> {size} nodes")

        elif style == "steps":
            if not self.steps:
                return "(no steps)"
            return "\n".join(f"{s.index}. {s!r}" for s in self.steps)

        elif style == "trees":
            blocks = []
            for s in self.steps:
                blocks.append(f"-- step {s.index} ({s.action}) --")
                blocks.append(s.tree_text or "")
            return "\n".join(blocks)

        else:  # verbose (default)
            return repr(self)

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for step in self.steps:
            lines.append(f"  {step.index}. {step!r}")
        if self.tree is not None:
            lines.append(f"Final: {self.tree.size()} nodes, depth {self.tree.depth()}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any step was taken."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": str(self.initial),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "tree": self.tree.to_dict() if self.tree is not None else None,
        }

    def action_counts(self) -> Dict[str, int]:
        """Count folds and drives."""
        counts: Dict[str, int] = {}
        for step in self.steps:
            counts[step.action] = counts.get(step.action, 0) + 1
        return counts

    def summary(self) -> str:
        """Get a brief summary of the construction."""
        if not self.steps:
            return "No steps taken"
        counts = self.action_counts()
        return (f"{len(self.steps)} steps: {counts.get('drive', 0)} drives, "
                f"{counts.get('fold', 0)} folds")


class Supercompiler:
    """
    Builds process trees for expressions over one SLL program.

    Each Supercompiler owns its own FreshNames supply, so fresh pattern
    variables are unique within (and reproducible across) instances.

    Example:
        sc = Supercompiler(parse_program("fId(x) = x;"))
        tree = sc.build_tree(parse_exp("fId(A())"))
        tree.root.children[0].exp   # => Constructor('A()')
    """

    def __init__(self, program: Program, fresh: Optional[FreshNames] = None):
        """
        Initialize a Supercompiler.

        Args:
            program: The program whose rules drive expressions
            fresh: Name supply for case-split variables.
                Default: a new FreshNames() issuing v_1, v_2, ...
        """
        self.program = program
        self.fresh = fresh if fresh is not None else FreshNames()
        self._program_vars = _rule_vars(program)

    @classmethod
    def from_text(cls, text: str) -> 'Supercompiler':
        """Create a supercompiler from SLL program text."""
        return cls(parse_program(text))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'Supercompiler':
        """Create a supercompiler from an .sll file."""
        return cls(load_program(path))

    # ============================================================
    # Driving
    # ============================================================

    def fresh_pattern(self, pattern: Pattern) -> Pattern:
        """Copy of `pattern` with every argument renamed to a fresh variable."""
        return Pattern(pattern.name, [self.fresh.fresh_var() for _ in pattern.args])

    def drive(self, e: Expression) -> List[DriveStep]:
        """
        One driving step.

        Variables of `e` and of the program are reserved first, so fresh
        pattern variables never capture them.

        Args:
            e: The expression to drive

        Returns:
            List of (expression, contraction) pairs, one per child of the
            node holding `e`

        Raises:
            ConfigurationError: if the program has no usable rule for a call
            DrivingError: for variables and patterns, which cannot be driven
        """
        self.fresh.reserve(self._program_vars)
        self.fresh.reserve(vars_of(e))
        return self._drive(e)

    def _drive(self, e: Expression) -> List[DriveStep]:
        if isinstance(e, Constructor):
            return [(arg, None) for arg in e.args]
        if isinstance(e, FCall):
            return [self._unfold(e)]
        if isinstance(e, GCall):
            return self._drive_gcall(e)
        if isinstance(e, Let):
            return [(e.exp, None)] + [(value, None) for _, value in e.bindings]
        raise DrivingError(f"Cannot drive {e.kind} {e}")

    def _unfold(self, e: FCall) -> DriveStep:
        rule = self.program.f.get(e.name)
        if rule is None:
            raise UnknownFunctionError(f"Unknown function {e.name}", e)
        if len(rule.params) != len(e.args):
            raise ArityError(
                f"{e.name} expects {len(rule.params)} arguments, got {len(e.args)}", e)
        subst = Substitution(zip([p.name for p in rule.params], e.args))
        return apply_subst(rule.exp, subst), None

    def _drive_gcall(self, e: GCall) -> List[DriveStep]:
        if not e.args:
            raise ArityError(f"{e.name} called without a scrutinee", e)
        if e.name not in self.program.gs:
            raise UnknownFunctionError(f"Unknown function {e.name}", e)

        scrutinee = e.args[0]
        if isinstance(scrutinee, Constructor):
            return [self._apply_grule(e, scrutinee)]

        if isinstance(scrutinee, Variable):
            result = []
            for rule in self.program.gs[e.name]:
                fp = self.fresh_pattern(rule.pattern)
                fc = Constructor(fp.name, fp.args)
                specialized = apply_subst(e, Substitution([(scrutinee.name, fc)]))
                exp, _ = self._drive(specialized)[0]
                result.append((exp, (scrutinee, fp)))
            return result

        result = []
        for inner_exp, inner_contraction in self._drive(scrutinee):
            result.append((GCall(e.name, (inner_exp,) + e.args[1:]), inner_contraction))
        return result

    def _apply_grule(self, e: GCall, scrutinee: Constructor) -> DriveStep:
        rule = self.program.g.get(f"{e.name}_{scrutinee.name}")
        if rule is None:
            raise NonExhaustiveMatchError(
                f"No rule of {e.name} matches constructor {scrutinee.name}", e)
        if len(rule.pattern.args) != len(scrutinee.args):
            raise ArityError(
                f"Pattern {rule.pattern} expects {len(rule.pattern.args)} fields, "
                f"got {len(scrutinee.args)}", e)
        if len(rule.params) != len(e.args) - 1:
            raise ArityError(
                f"{e.name} expects {len(rule.params) + 1} arguments, got {len(e.args)}", e)

        pairs = [(v.name, arg) for v, arg in zip(rule.pattern.args, scrutinee.args)]
        pairs += [(v.name, arg) for v, arg in zip(rule.params, e.args[1:])]
        return apply_subst(rule.exp, Substitution(pairs)), None

    # ============================================================
    # Tree Construction
    # ============================================================

    def find_fold(self, node: Node) -> Tuple[Optional[Node], MatchResult]:
        """
        Nearest ancestor of the same kind that generalizes `node`.

        Returns:
            (ancestor, substitution) with apply_subst(ancestor.exp,
            substitution) equal to node.exp, or (None, NoMatch)
        """
        for ancestor in node.ancestors():
            if ancestor.exp.kind != node.exp.kind:
                continue
            subst = match_against(ancestor.exp, node.exp)
            if subst:
                return ancestor, subst
        return None, NoMatch

    def step(self, tree: Tree, leaf: Node) -> Tuple[str, List[DriveStep]]:
        """
        Grow `tree` at `leaf` by one fold or one drive.

        Returns:
            ("fold", [(let, contraction)]) or ("drive", children)
        """
        if isinstance(leaf.exp, (FCall, GCall)):
            ancestor, subst = self.find_fold(leaf)
            if ancestor is not None:
                new_node = tree.replace(leaf, Let(ancestor.exp, subst.to_bindings()))
                return "fold", [(new_node.exp, new_node.contraction)]

        children = self.drive(leaf.exp)
        tree.add_children(leaf, children)
        return "drive", children

    def build_tree(
        self,
        exp: Expression,
        trace: bool = False,
        max_steps: Optional[int] = None,
        on_step: Optional[StepCallback] = None,
    ):
        """
        Build the process tree of an expression.

        Args:
            exp: The initial expression (root of the tree)
            trace: If True, return (tree, trace) tuple
            max_steps: Maximum growth steps (default: None, unlimited).
                Supercompilation is not guaranteed to terminate for every
                program; set a limit to turn divergence into BuildAborted.
            on_step: Optional callback(step, tree) called after each step

        Returns:
            The completed Tree, or (tree, trace) if trace=True

        Raises:
            BuildAborted: if max_steps steps were taken without finishing,
                or the expressions grew too deep for Python's recursion limit
            ConfigurationError: if a call cannot be driven by the program
        """
        tree = Tree(exp)
        trace_obj = BuildTrace()
        trace_obj.initial = exp
        trace_obj.tree = tree
        logger.debug("Building tree for %s", exp)

        count = 0
        try:
            while True:
                leaf = tree.unprocessed_leaf()
                if leaf is None:
                    break
                if max_steps is not None and count >= max_steps:
                    logger.debug("Step limit %d reached", max_steps)
                    raise BuildAborted(count, tree, max_steps)

                before = leaf.exp
                action, results = self.step(tree, leaf)
                count += 1
                step = BuildStep(count, action, before, results,
                                 tree_text=tree.format() if trace else None)
                logger.debug("Step %d: %r", count, step)
                if trace:
                    trace_obj.add_step(step)
                if on_step is not None:
                    on_step(step, tree)
        except RecursionError:
            logger.debug("Recursion limit reached after %d steps", count)
            raise BuildAborted(count, tree, max_steps,
                               reason="expressions nested too deeply")

        logger.debug("Finished after %d steps, %d nodes", count, tree.size())
        if trace:
            return tree, trace_obj
        return tree

    def __call__(self, exp: Expression, **kwargs):
        """Shorthand for build_tree."""
        return self.build_tree(exp, **kwargs)

    def __repr__(self) -> str:
        return f"Supercompiler({len(self.program)} rules, {self.fresh!r})"
