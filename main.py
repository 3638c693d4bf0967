"""
Calla Programming Language - Main Entry Point
Shows each compilation stage of a script, or runs it
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

from core import format_literal, pretty_print_ast
from error_handling import CallaParseError, get_context_lines
from interpreter import interpret_program
from optimizer import optimize
from parsing import create_debug_parser, create_parser, pretty_print_cst
from semantics import CallaSemanticsError, analyze_program
from stdlib import CallaRuntimeError, describe_builtins


VERSION = "Calla v0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='calla',
      description='Calla Programming Language - analyzer and optimizer',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.calla              # Optimize and run a script
  %(prog)s --parse script.calla      # Show the concrete syntax tree
  %(prog)s --analyze script.calla    # Show the decorated tree
  %(prog)s --optimize script.calla   # Show the optimized tree
  %(prog)s --debug script.calla      # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Calla script file'
  )

  stage = parser.add_mutually_exclusive_group()
  stage.add_argument(
      '--parse',
      action='store_const', dest='stage', const='parsed',
      help='Parse file and show CST'
  )
  stage.add_argument(
      '--analyze',
      action='store_const', dest='stage', const='analyzed',
      help='Parse and analyze file, show the decorated tree'
  )
  stage.add_argument(
      '--optimize',
      action='store_const', dest='stage', const='optimized',
      help='Parse, analyze and optimize file, show the optimized tree'
  )
  stage.add_argument(
      '--run',
      action='store_const', dest='stage', const='run',
      help='Optimize and run the file (default)'
  )

  parser.add_argument(
      '--no-optimize',
      action='store_true',
      help='With --run, execute the unoptimized tree'
  )

  parser.add_argument(
      '--builtins',
      action='store_true',
      help='List the standard library and exit'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  parser.set_defaults(stage='run')
  return parser


def report_semantics_error(script_path: str, source: str, e: CallaSemanticsError) -> None:
  print(f"Semantic analysis error in '{script_path}': {e}")
  if e.kind:
    print(f"  Kind: {e.kind}")
  if e.span:
    print(get_context_lines(source, e.span.start_line, e.span.start_col))


def process_file(script_path: str, stage: str, optimize_before_run: bool = True,
                 debug: bool = False) -> int:
  """Run the pipeline on a script up to stage; returns the exit status"""
  try:
    source = Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print("  Hint: Check the file path and make sure the file exists")
    return 1
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    return 1
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print("  Hint: Make sure the file is a text file with UTF-8 encoding")
    return 1

  parser = create_debug_parser() if debug else create_parser()

  try:
    cst = parser.parse_string(source, script_path)
    if stage == 'parsed':
      print(pretty_print_cst(cst), end='')
      return 0

    program = analyze_program(cst, debug)
    if stage == 'analyzed':
      print(pretty_print_ast(program), end='')
      return 0

    if stage == 'optimized' or optimize_before_run:
      program = optimize(program, debug)
    if stage == 'optimized':
      print(pretty_print_ast(program), end='')
      return 0

    interpret_program(program, debug, emit=lambda value: print(format_literal(value)))
    return 0

  except CallaParseError as e:
    print(f"Parse error in '{script_path}':\n{e}")
    return 1
  except CallaSemanticsError as e:
    report_semantics_error(script_path, source, e)
    return 1
  except CallaRuntimeError as e:
    print(f"\n{'='*70}")
    print(f"Runtime Error in '{script_path}'")
    print(f"{'='*70}")
    print(f"\nError: {e.message}\n")
    return 1
  except RecursionError:
    print(f"Runtime Error in '{script_path}': recursion too deep")
    return 1
  except Exception as e:
    print(f"Unexpected error while processing '{script_path}': {e}")
    if debug:
      import traceback
      traceback.print_exc()
    return 1


def show_builtins() -> None:
  print("Calla standard library:")
  for description in describe_builtins().values():
    print(f"  {description}")


def main(argv: Optional[list] = None) -> None:
  """Main entry point for Calla"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.builtins:
    show_builtins()
    return

  if not args.script:
    arg_parser.print_help()
    sys.exit(1)

  status = process_file(args.script, args.stage, not args.no_optimize, args.debug)
  if status:
    sys.exit(status)


if __name__ == "__main__":
  main()
