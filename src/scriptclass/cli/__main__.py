"""
Main Entry Point for the scriptclass CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `scriptclass.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from scriptclass import __version__
from scriptclass.cli import commands
from scriptclass.core.errors import InvalidArgumentError
from scriptclass.utils.console import configure_logging, log_error


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="scriptclass: compile Python scripts into classes")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("-v", "--verbose", action="store_true", help="Log every pass application")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: RENDER ---
  cmd_render = subparsers.add_parser("render", help="Print the generated source of a script")
  cmd_render.add_argument("script", help="Script text or path of a script file")
  cmd_render.add_argument("--pojo", action="store_true", help="Strip the script scaffolding")
  cmd_render.add_argument("--sam", default=None, help="Functional interface to implement (module:Name)")
  cmd_render.add_argument("--names", default=None, help="Comma-separated parameter names of the implementation")
  cmd_render.add_argument(
    "--fields",
    nargs="+",
    default=None,
    help="Final fields initialized from a mapping (name=module:Type, or name=int for builtins)",
  )
  cmd_render.add_argument("--to-string", action="store_true", help="Generate a descriptive __str__")
  cmd_render.add_argument(
    "--json-trace", type=Path, default=None, help="Dump the compilation trace (phases, passes) to a JSON file."
  )

  # --- Command: RUN ---
  cmd_run = subparsers.add_parser("run", help="Implement a functional interface with a script and call it")
  cmd_run.add_argument("script", help="Script text or path of a script file")
  cmd_run.add_argument("--sam", required=True, help="Functional interface to implement (module:Name)")
  cmd_run.add_argument("--names", default=None, help="Comma-separated parameter names of the implementation")
  cmd_run.add_argument("args", nargs="*", help="Arguments, evaluated as Python literals")

  # Trailing run arguments may follow the options
  args, extras = parser.parse_known_args(argv)
  if extras:
    if args.command != "run" or any(e.startswith("--") for e in extras):
      parser.error(f"unrecognized arguments: {' '.join(extras)}")
    args.args = [*args.args, *extras]
  configure_logging(verbose=args.verbose)

  try:
    if args.command == "render":
      return commands.handle_render(
        args.script, args.pojo, args.sam, args.names, args.fields, args.to_string, args.json_trace
      )

    elif args.command == "run":
      return commands.handle_run(args.script, args.sam, args.names, args.args)

  except InvalidArgumentError as e:
    log_error(str(e))
    return 1

  return 0


if __name__ == "__main__":
  sys.exit(main())
