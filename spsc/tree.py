"""
Process trees.

A process tree records the configurations met while supercompiling an
expression. Each Node owns its children; the link from a child back to
its parent is a weak reference, so the tree has no reference cycles and
is freed as soon as the Tree (which owns the root) is dropped.

A node may carry a contraction (variable, pattern): the node was
produced by specializing that variable of its parent's configuration to
that pattern during a case-split.
"""

import weakref
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .algebra import equiv
from .lang import Variable, Constructor, Pattern, FCall, GCall, Expression

Contraction = Tuple[Variable, Pattern]
DriveResult = Sequence[Tuple[Expression, Optional[Contraction]]]


def format_contraction(contraction: Optional[Contraction]) -> str:
    """Render a contraction as "x = S(v_1)", or "" when absent."""
    if contraction is None:
        return ""
    var, pattern = contraction
    return f"{var} = {pattern}"


class Node:
    """A configuration in the process tree."""

    __slots__ = ("exp", "contraction", "children", "_parent", "__weakref__")

    def __init__(self, exp: Expression, contraction: Optional[Contraction] = None):
        self.exp = exp
        self.contraction = contraction
        self.children: List["Node"] = []
        self._parent: Optional[weakref.ref] = None

    @property
    def parent(self) -> Optional["Node"]:
        """The parent node, or None for the root."""
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, node: Optional["Node"]) -> None:
        self._parent = weakref.ref(node) if node is not None else None

    def is_leaf(self) -> bool:
        return not self.children

    def ancestors(self) -> List["Node"]:
        """Ancestors nearest first: parent, grandparent, ..., root."""
        result = []
        node = self.parent
        while node is not None:
            result.append(node)
            node = node.parent
        return result

    def leaves(self) -> List["Node"]:
        """Leaves of this subtree in pre-order, left to right."""
        return [node for node in self.walk() if not node.children]

    def walk(self) -> Iterator["Node"]:
        """All nodes of this subtree in pre-order."""
        # Explicit stack: divergent constructions grow arbitrarily deep.
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def is_processed(self) -> bool:
        """
        Whether this node needs no further work.

        Variables and nullary constructors are fully evaluated. A call is
        processed when an ancestor of the same kind holds the same call up
        to renaming. Anything else still has a driving step to take.
        """
        exp = self.exp
        if isinstance(exp, Variable):
            return True
        if isinstance(exp, Constructor):
            return len(exp.args) == 0
        if isinstance(exp, (FCall, GCall)):
            for ancestor in self.ancestors():
                if ancestor.exp.kind == exp.kind and equiv(exp, ancestor.exp):
                    return True
            return False
        return False

    def format(self, indent: str = "") -> str:
        """Indented text dump of this subtree, one node per line."""
        lines = []
        stack = [(self, indent)]
        while stack:
            node, prefix = stack.pop()
            line = f"{prefix}|__{node.exp}"
            if node.contraction is not None:
                line += f"  {{{format_contraction(node.contraction)}}}"
            lines.append(line)
            stack.extend((child, prefix + "    ") for child in reversed(node.children))
        return "\n ".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert subtree to a JSON-serializable dictionary."""
        contraction = None
        if self.contraction is not None:
            var, pattern = self.contraction
            contraction = {"var": var.name, "pattern": pattern.to_dict()}
        return {
            "exp": str(self.exp),
            "term": self.exp.to_dict(),
            "contraction": contraction,
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        return f"Node({str(self.exp)!r}, children={len(self.children)})"


class Tree:
    """
    A process tree rooted at one initial expression.

    Trees only grow: children are appended to leaves, and a leaf can be
    replaced by a new node (used for folding). Every other node keeps its
    identity and its ancestor chain.

    Example:
        tree = Tree(parse_exp("fId(A())"))
        tree.add_children(tree.root, [(parse_exp("A()"), None)])
        print(tree)
        # |__fId(A())
        #      |__A()
    """

    def __init__(self, exp: Expression):
        self.root = Node(exp)

    def add_children(self, node: Node, pairs: DriveResult) -> "Tree":
        """Append one child per (expression, contraction) pair, in order."""
        for exp, contraction in pairs:
            child = Node(exp, contraction)
            child.parent = node
            node.children.append(child)
        return self

    def leaves(self) -> List[Node]:
        return self.root.leaves()

    def nodes(self) -> List[Node]:
        """All nodes in pre-order."""
        return list(self.root.walk())

    def unprocessed_leaf(self) -> Optional[Node]:
        """The first leaf in pre-order that is not processed, or None."""
        for leaf in self.leaves():
            if not leaf.is_processed():
                return leaf
        return None

    def is_complete(self) -> bool:
        return self.unprocessed_leaf() is None

    def replace(self, node: Node, exp: Expression) -> Node:
        """
        Replace `node` by a new childless node holding `exp`.

        The new node takes the old node's place among its siblings and
        keeps its contraction. Replacing the root installs a new
        parentless root.

        Returns:
            The new node
        """
        parent = node.parent
        if parent is None:
            self.root = Node(exp)
            return self.root

        new_node = Node(exp, node.contraction)
        new_node.parent = parent
        for i, child in enumerate(parent.children):
            if child is node:
                parent.children[i] = new_node
                break
        else:
            raise ValueError(f"{node!r} is not a child of its parent")
        return new_node

    def size(self) -> int:
        """Number of nodes."""
        return sum(1 for _ in self.root.walk())

    def depth(self) -> int:
        """Length of the longest root-to-leaf path, counted in nodes."""
        return max(len(leaf.ancestors()) for leaf in self.leaves()) + 1

    def format(self) -> str:
        return self.root.format()

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Tree(root={str(self.root.exp)!r}, size={self.size()})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert tree to a JSON-serializable dictionary."""
        return {
            "root": self.root.to_dict(),
            "size": self.size(),
            "depth": self.depth(),
        }
