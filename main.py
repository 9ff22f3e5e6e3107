"""
Tern Programming Language - Main Entry Point
A tiny s-expression language with lazily evaluated builtin arguments
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import TernParseError, format_run_error, is_error
from interpreter import (
  create_interpreter,
  ensure_recursion_limit,
  list_builtin_functions,
  DEFAULT_MAX_DEPTH,
)
from parsing import create_parser, create_debug_parser, pretty_print_node
from stdlib import tern_show


VERSION = "Tern v0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Tern Programming Language - s-expressions with a single shared environment',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.tern                 # Run a Tern script
  %(prog)s -i                          # Interactive mode
  %(prog)s --parse script.tern         # Parse and show the node tree
  %(prog)s --debug script.tern         # Run with evaluation trace on stderr
  %(prog)s --max-depth 500 deep.tern   # Allow deeper nesting
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Tern script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the node tree (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_DEPTH,
      help=f'Maximum evaluation depth (default: {DEFAULT_MAX_DEPTH})'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def parse_file(script_path: str, debug: bool = False) -> int:
  """Parse a Tern script file and show the node tree"""
  parser = create_debug_parser() if debug else create_parser()

  try:
    nodes = parser.parse_file(script_path)
  except TernParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    return 1

  print(f"Parsed {len(nodes)} top-level forms:")
  print("=" * 50)
  for i, node in enumerate(nodes, 1):
    print(f"\nForm {i}:")
    print(pretty_print_node(node), end='')
  return 0


def run_script_file(script_path: str, debug: bool = False,
                    max_depth: int = DEFAULT_MAX_DEPTH) -> int:
  """Run a Tern script file, returning the process exit status"""
  interpreter = create_interpreter(debug=debug, max_depth=max_depth)
  try:
    nodes = interpreter.parser.parse_file(script_path)
    if debug:
      print(f"Evaluating {len(nodes)} forms from {script_path}", file=sys.stderr)

    result = interpreter.eval_program(nodes)
    if is_error(result):
      print(f"Runtime error in '{script_path}': {format_run_error(result)}")
      return 1
    return 0
  except TernParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    return 1
  finally:
    interpreter.close()


def setup_readline() -> None:
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.tern_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet

  readline.set_history_length(1000)

  completions = list_builtin_functions() + [":parse", ":env", ":help", "exit"]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_repl_help() -> None:
  print("REPL Commands:")
  print("  :parse <expr>     - Show parsed node tree")
  print("  :env              - Show current environment")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  (set x 5)                       - Bind a variable")
  print("  (let x 5 (+ x 1))               - Temporary binding")
  print("  (set double (fn (x) (* x 2)))   - Define a function")
  print("  (if (lt x 3) \"small\" \"big\")     - Conditional")
  print("  (print \"x is\" x)                - Print values")


def run_interactive_mode(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
  """Run Tern in interactive mode with one environment for the session"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()
  interpreter = create_interpreter(debug=debug, max_depth=max_depth)

  while True:
    try:
      code = input("tern> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    stripped = code.strip()
    if stripped == "exit":
      break
    if not stripped:
      continue

    if stripped.startswith(":parse "):
      try:
        node = interpreter.parser.parse_expression(stripped[7:])
        print(pretty_print_node(node), end='')
      except TernParseError as e:
        print(e)
      continue

    if stripped == ":env":
      bindings = interpreter.user_bindings()
      if not bindings:
        print("  (no bindings)")
      for name, value in bindings.items():
        val_str = tern_show(value)
        if len(val_str) > 60:
          val_str = val_str[:57] + "..."
        print(f"  {name} = {val_str}")
      continue

    if stripped == ":help":
      print_repl_help()
      continue

    try:
      nodes = interpreter.parser.parse_string(code)
    except TernParseError as e:
      print(e)
      continue

    result = interpreter.eval_program(nodes)
    if is_error(result):
      print(f"Runtime error: {format_run_error(result)}")
    elif result['node'] is not None:
      print(f"=> {tern_show(result['node'])}")

  interpreter.close()


def show_language_info() -> None:
  """Show Tern language information"""
  print("Tern Programming Language")
  print("=" * 50)
  print("A small s-expression language with:")
  print("• Numbers, strings, quoted values")
  print("• Builtins that evaluate their own arguments (if, do, set, let)")
  print("• User functions over one shared environment")
  print()


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for Tern"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.max_depth < 1:
    arg_parser.error("--max-depth must be positive")

  # --parse reads without creating an environment
  ensure_recursion_limit(args.max_depth)

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      return 1

    if args.parse:
      return parse_file(args.script, debug=args.debug)
    return run_script_file(args.script, debug=args.debug, max_depth=args.max_depth)

  if args.interactive:
    run_interactive_mode(debug=args.debug, max_depth=args.max_depth)
    return 0

  arg_parser.print_help()
  print()
  show_language_info()
  return 0


if __name__ == "__main__":
  sys.exit(main())
