#!/usr/bin/env python3
"""
SPSC Command-Line Interface

Provides interactive REPL, one-shot and pipe/filter modes.

Usage:
    spsc                                   # Start REPL
    spsc add.sll                           # REPL with program preloaded
    spsc add.sll -e "gAdd(a, b)"           # Print the process tree
    spsc add.sll -e "gAdd(a, b)" -f json   # ... as JSON
    echo "gAdd(a, b)" | spsc add.sll       # Filter mode, one expression per line

Program Format (.sll files):
    # Addition on Peano numbers
    gAdd(Z(), y) = y;
    gAdd(S(x), y) = S(gAdd(x, y));

REPL Commands:
    :help              Show help
    :load FILE         Load rules from an .sll file
    :rules             List loaded rules
    :clear             Clear all rules
    :trace on|off      Toggle tracing
    :steps N           Set the step limit (0 for unlimited)
    :format NAME       Set output format (tree, json, steps)
    :quit              Exit
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .errors import BuildAborted, SPSCError
from .lang import Program, RuleType
from .parser import load_program, parse_exp, parse_program
from .supercompiler import Supercompiler

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

OUTPUT_FORMATS = ["tree", "json", "steps"]

DEFAULT_MAX_STEPS = 1000

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ABORTED = 2


class SPSCCompleter:
    """Tab completer for SPSC REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":load", ":rules", ":clear",
        ":trace", ":steps", ":format",
    ]

    TRACE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'SPSCREPL'):
        self.repl = repl

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        """Get list of matches for the current input."""
        line = line.lstrip()

        if line.startswith(":format "):
            return [f for f in OUTPUT_FORMATS if f.startswith(text)]

        if line.startswith(":trace "):
            return [t for t in self.TRACE_OPTIONS if t.startswith(text)]

        if line.startswith(":load "):
            return self._complete_path(text)

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # In expression context, complete defined function names
        names = sorted(set(self.repl.program.f) | set(self.repl.program.gs))
        return [n for n in names if text and n.startswith(text)]

    def _complete_path(self, text: str) -> list:
        """Complete file paths."""
        import glob

        if not text:
            text = "./"

        matches = []
        for path in glob.glob(text + "*"):
            if Path(path).is_dir():
                matches.append(path + "/")
            else:
                matches.append(path)

        return matches


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def is_rule_text(text: str) -> bool:
    """True if the input defines rules rather than naming an expression."""
    return "=" in text and text.rstrip().endswith(";")


def step_limit(text: str) -> int:
    """argparse type for --max-steps: a non-negative integer."""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid step limit: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"step limit must be 0 or more, got {value}")
    return value


class SPSCREPL:
    """Interactive REPL for spsc."""

    def __init__(self):
        self.rules: List[RuleType] = []
        self.program = Program()
        self.trace = False
        self.max_steps: Optional[int] = DEFAULT_MAX_STEPS
        self.output_format = "tree"
        self.running = True
        self.multi_line_buffer = ""

        if HAS_READLINE:
            self.history_file = Path.home() / ".spsc_history"
            try:
                readline.read_history_file(self.history_file)
            except FileNotFoundError:
                pass
            readline.set_history_length(1000)

            self.completer = SPSCCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n(),")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError:
                pass

    def add_rules(self, rules: List[RuleType]) -> None:
        """Append rules and rebuild the program indexes."""
        self.rules.extend(rules)
        self.program = Program(self.rules)

    def load(self, path: Path) -> int:
        """Load rules from a file; returns the number of rules added."""
        loaded = load_program(path)
        self.add_rules(loaded.rules)
        return len(loaded)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd == "quit" or cmd == "exit" or cmd == "q":
            self.running = False
            return None

        elif cmd == "load":
            if not arg:
                return "Usage: :load FILENAME"
            try:
                added = self.load(Path(arg))
                return f"Loaded {added} rules from {arg}"
            except (OSError, SPSCError) as e:
                return f"Error loading {arg}: {e}"

        elif cmd == "rules":
            if not self.rules:
                return "No rules loaded"
            return str(self.program)

        elif cmd == "clear":
            self.rules = []
            self.program = Program()
            return "Cleared all rules"

        elif cmd == "trace":
            if arg.lower() in ("on", "true", "1"):
                self.trace = True
                return "Tracing enabled"
            elif arg.lower() in ("off", "false", "0"):
                self.trace = False
                return "Tracing disabled"
            else:
                self.trace = not self.trace
                return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "steps":
            if not arg:
                limit = self.max_steps if self.max_steps is not None else "unlimited"
                return f"Step limit: {limit}"
            try:
                value = int(arg)
            except ValueError:
                return "Usage: :steps N (0 for unlimited)"
            if value < 0:
                return "Usage: :steps N (0 for unlimited)"
            self.max_steps = value or None
            return f"Step limit set to: {value or 'unlimited'}"

        elif cmd == "format":
            if arg.lower() in OUTPUT_FORMATS:
                self.output_format = arg.lower()
                return f"Format set to: {self.output_format}"
            else:
                return f"Unknown format. Options: {', '.join(OUTPUT_FORMATS)}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """SPSC REPL Commands:
  :help              Show this help
  :load FILE         Load rules from an .sll file
  :rules             List all loaded rules
  :clear             Clear all rules
  :trace on|off      Toggle tracing
  :steps N           Set the step limit (0 for unlimited)
  :format NAME       Set output format (tree, json, steps)
  :quit              Exit

Syntax:
  fName(x, y) = exp;                       Define an f-rule
  gName(C(x), y) = exp;                    Define a g-rule
  exp                                      Build the process tree of exp
"""

    def supercompile(self, text: str) -> str:
        """Build the process tree of an expression and render it."""
        exp = parse_exp(text)
        sc = Supercompiler(self.program)
        if self.trace or self.output_format == "steps":
            tree, trace = sc.build_tree(exp, trace=True, max_steps=self.max_steps)
        else:
            tree, trace = sc.build_tree(exp, max_steps=self.max_steps), None

        if self.output_format == "json":
            output = json.dumps(tree.to_dict(), indent=2)
        elif self.output_format == "steps":
            output = trace.format("steps")
        else:
            output = tree.format()

        if self.trace:
            return f"{trace.format('trees')}\n{trace.summary()}\n{output}"
        return output

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        if not line or line.startswith("#") or line.startswith("//"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        try:
            if is_rule_text(line):
                parsed = parse_program(line)
                self.add_rules(parsed.rules)
                return f"Added {len(parsed)} rule(s)"
            return self.supercompile(line)
        except BuildAborted as e:
            return str(e)
        except SPSCError as e:
            return f"Error: {e}"

    def run(self):
        """Run the REPL loop."""
        print("SPSC - Simple Positive SuperCompiler")
        print("Type :help for help, :quit to exit")
        print("Multi-line input: input with unbalanced parens continues on next line")
        print()

        while self.running:
            try:
                if self.multi_line_buffer:
                    prompt = "..... "
                else:
                    prompt = "spsc> "

                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += "\n" + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)

                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ProgramRunner:
    """Runs spsc non-interactively."""

    def __init__(self):
        self.repl = SPSCREPL()

    @staticmethod
    def exit_code(result: Optional[str]) -> int:
        if result is None:
            return EXIT_OK
        if result.startswith("Aborted"):
            return EXIT_ABORTED
        if result.startswith("Error"):
            return EXIT_ERROR
        return EXIT_OK

    def run_expression(self, expr_str: str) -> int:
        """
        Supercompile a single expression.

        Returns:
            Exit code (0 success, 1 error, 2 step limit reached)
        """
        result = self.repl.process_line(expr_str)
        code = self.exit_code(result)
        if result:
            print(result, file=sys.stderr if code else sys.stdout)
        return code

    def run_stdin(self) -> int:
        """
        Read lines from stdin: rules are added, expressions supercompiled.

        Returns:
            Exit code of the first failing line, or 0
        """
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            code = self.exit_code(result)
            if result:
                print(result, file=sys.stderr if code else sys.stdout)
            if code:
                return code

        return EXIT_OK


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="spsc",
        description="SPSC - Simple Positive SuperCompiler for SLL",
        epilog="Examples:\n"
               "  spsc                              Start REPL\n"
               "  spsc add.sll                      REPL with program\n"
               "  spsc add.sll -e 'gAdd(a, b)'      Print process tree\n"
               "  echo 'gAdd(a, b)' | spsc add.sll  Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "program",
        nargs="?",
        help="SLL program file (.sll)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Supercompile a single expression"
    )

    parser.add_argument(
        "-m", "--max-steps",
        type=step_limit,
        default=DEFAULT_MAX_STEPS,
        help=f"Abort after this many growth steps, 0 for unlimited (default: {DEFAULT_MAX_STEPS})"
    )

    parser.add_argument(
        "-f", "--format",
        default="tree",
        choices=OUTPUT_FORMATS,
        help="Output format"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Print the tree after every growth step"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log driving and folding steps to stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    runner = ProgramRunner()
    runner.repl.trace = args.trace
    runner.repl.output_format = args.format
    runner.repl.max_steps = args.max_steps or None

    if args.program:
        try:
            added = runner.repl.load(Path(args.program))
            if not args.quiet:
                print(f"Loaded {added} rules from {args.program}", file=sys.stderr)
        except (OSError, SPSCError) as e:
            print(f"Error loading {args.program}: {e}", file=sys.stderr)
            sys.exit(EXIT_ERROR)

    if args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()
