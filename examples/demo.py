#!/usr/bin/env python3
"""
SPSC Feature Demonstration

This script demonstrates the major features of the SPSC library.
"""

import json
from pathlib import Path
from spsc import (
    Supercompiler, BuildAborted, SPSCError,
    parse_exp, match_against, equiv,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def demo_basic_usage():
    """Demonstrate building a process tree."""
    section("Basic Usage")

    sc = Supercompiler.from_text('''
        gAdd(Z(), y) = y;
        gAdd(S(x), y) = S(gAdd(x, y));
    ''')

    for exp_str in ["gAdd(S(Z()), b)", "gAdd(a, b)"]:
        print(f"\n  {exp_str}:")
        print(indent(sc.build_tree(parse_exp(exp_str)).format(), "    "))


def demo_algebra():
    """Demonstrate matching and renaming equivalence."""
    section("Matching and Equivalence")

    examples = [
        ("gAdd(x, y)", "gAdd(S(a), b)"),
        ("gAdd(x, x)", "gAdd(a, b)"),
        ("gAdd(a, b)", "gAdd(x, y)"),
    ]

    for pattern, exp in examples:
        p, e = parse_exp(pattern), parse_exp(exp)
        print(f"  match {pattern} against {exp} => {match_against(p, e)!r}")
        print(f"    equivalent: {equiv(p, e)}")


def demo_folding():
    """Demonstrate folding a repeated call into a let."""
    section("Folding")

    sc = Supercompiler.from_text("fUp(x) = fUp(S(x));")
    print(indent(sc.build_tree(parse_exp("fUp(a)")).format()))


def demo_tracing():
    """Demonstrate build traces."""
    section("Tracing")

    sc = Supercompiler.from_text('''
        gNot(T()) = F();
        gNot(F()) = T();
        fNotNot(b) = gNot(gNot(b));
    ''')

    tree, trace = sc.build_tree(parse_exp("fNotNot(b)"), trace=True)
    print(indent(trace.format("steps")))
    print(f"\n  {trace.format('compact')}")
    print(f"  {trace.summary()}")


def demo_step_limit():
    """Demonstrate aborting a diverging construction."""
    section("Step Limit")

    sc = Supercompiler.from_file(Path(__file__).parent / "lists.sll")

    try:
        sc.build_tree(parse_exp("fReverse(xs)"), max_steps=20)
    except BuildAborted as e:
        print(f"  fReverse(xs): {e}")
        print(f"  partial tree: {e.tree.size()} nodes, depth {e.tree.depth()}")


def demo_file_loading():
    """Demonstrate loading programs from files."""
    section("Loading Programs from Files")

    examples_dir = Path(__file__).parent

    lists = Supercompiler.from_file(examples_dir / "lists.sll")
    print(f"  Loaded {len(lists.program)} rules from lists.sll")

    tree = lists.build_tree(parse_exp("gApp(gApp(xs, ys), zs)"))
    print(f"\n  gApp(gApp(xs, ys), zs): {tree.size()} nodes, depth {tree.depth()}")
    print(indent(tree.format(), "    "))

    arith = Supercompiler.from_file(examples_dir / "add.sll")
    print(f"\n  Loaded {len(arith.program)} rules from add.sll")
    data = arith.build_tree(parse_exp("gAdd(gAdd(a, b), c)")).to_dict()
    print(f"  JSON root: {json.dumps(data['root']['exp'])}, size {data['size']}")


def demo_errors():
    """Demonstrate error reporting."""
    section("Errors")

    sc = Supercompiler.from_text("gNot(T()) = F();")

    for exp_str in ["gNot(F())", "fMissing(x)", "gNot(T("]:
        try:
            sc.build_tree(parse_exp(exp_str))
        except SPSCError as e:
            print(f"  {exp_str}: {type(e).__name__}: {e}")


def main():
    """Run all demonstrations."""
    print("SPSC - Simple Positive SuperCompiler")
    print("Feature Demonstration")

    demo_basic_usage()
    demo_algebra()
    demo_folding()
    demo_tracing()
    demo_step_limit()
    demo_file_loading()
    demo_errors()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
