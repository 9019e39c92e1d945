"""
CLI Command Handlers.

Implements ``scriptclass render`` and ``scriptclass run``. Both compile a
script (given inline or as a file path) with the passes selected on the
command line; ``render`` prints the generated source, ``run`` loads the class
and calls its single abstract method implementation.
"""

import ast
import importlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import libcst as cst

from scriptclass.compiler.pipeline import ScriptCompilation, ScriptCompiler
from scriptclass.config import CompilerConfig
from scriptclass.core.errors import CompilationError, InvalidArgumentError
from scriptclass.passes import SamImplementation
from scriptclass.utils.console import console, log_error, log_info, log_success


def resolve_object(target: str) -> Any:
  """
  Imports an object given as ``module:Name`` (``Name`` may be dotted).

  Args:
      target: e.g. ``numbers:Number`` or ``mypkg.ops:BinaryOperator``.

  Returns:
      Any: The resolved object.

  Raises:
      InvalidArgumentError: If the target is malformed or cannot be resolved.
  """
  module_name, sep, attr_path = target.partition(":")
  if not sep or not module_name or not attr_path:
    raise InvalidArgumentError(f"Expected: module:Name\nFound: {target}")
  try:
    obj: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
      obj = getattr(obj, attr)
  except (ImportError, AttributeError) as e:
    raise InvalidArgumentError(f"Expected: importable object\nFound: {target} ({e})") from e
  return obj


def parse_field_definitions(items: Optional[Sequence[str]]) -> Dict[str, Any]:
  """
  Parses ``name=module:Type`` items into an ordered name to type mapping.

  Builtin types may be given without a module (``count=int``).
  """
  definitions: Dict[str, Any] = {}
  for item in items or []:
    name, sep, type_spec = item.partition("=")
    if not sep:
      raise InvalidArgumentError(f"Expected: name=module:Type\nFound: {item}")
    type_spec = type_spec.strip()
    definitions[name.strip()] = resolve_object(type_spec if ":" in type_spec else f"builtins:{type_spec}")
  return definitions


def parse_arguments(values: Sequence[str]) -> List[Any]:
  """Evaluates each argument as a Python literal, keeping it as text otherwise."""
  parsed = []
  for value in values:
    try:
      parsed.append(ast.literal_eval(value))
    except (ValueError, SyntaxError):
      parsed.append(value)
  return parsed


def _start(compiler: ScriptCompiler, script: str) -> ScriptCompilation:
  path = Path(script)
  try:
    is_file = "\n" not in script and path.is_file()
  except OSError:
    # Script text too long to be a file name
    is_file = False
  if is_file:
    return compiler.compile_file(path)
  return compiler.compile(script)


def _configure(
  compilation: ScriptCompilation,
  pojo: bool,
  sam: Optional[str],
  names: Optional[str],
  fields: Optional[Sequence[str]],
  to_string: bool,
) -> Optional[SamImplementation]:
  if pojo:
    compilation.then_apply_pojo_class()

  sam_pass = None
  if sam:
    compilation.then_apply_sam_implementation(resolve_object(sam))
    sam_pass = compilation.last_pass
    if names:
      compilation.then_apply_param_names(compilation.sam_impl, *[n.strip() for n in names.split(",")])

  definitions = parse_field_definitions(fields)
  if definitions:
    compilation.then_apply_fields_from_map(definitions)
  if to_string:
    compilation.then_apply_explicit_to_string()
  return sam_pass


def _write_trace(compilation: ScriptCompilation, json_trace_path: Optional[Path]) -> None:
  if json_trace_path is None:
    return
  json_trace_path.write_text(json.dumps(compilation.trace_events(), indent=2, default=str), encoding="utf-8")
  log_info(f"Trace written to [path]{json_trace_path}[/path]")


def handle_render(
  script: str,
  pojo: bool = False,
  sam: Optional[str] = None,
  names: Optional[str] = None,
  fields: Optional[Sequence[str]] = None,
  to_string: bool = False,
  json_trace_path: Optional[Path] = None,
) -> int:
  """
  Handles the 'render' command: prints the generated source of a script.

  Args:
      script: Script text, or the path of a script file.
      pojo: Strip the script scaffolding.
      sam: ``module:Interface`` to implement.
      names: Comma-separated parameter names for the implementation.
      fields: ``name=module:Type`` final field definitions.
      to_string: Generate a descriptive ``__str__``.
      json_trace_path: Optional path to dump the compilation trace.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  with ScriptCompiler(CompilerConfig.load()) as compiler:
    compilation = _start(compiler, script)
    try:
      _configure(compilation, pojo, sam, names, fields, to_string)
      source = compilation.to_source()
    except (CompilationError, cst.ParserSyntaxError) as e:
      log_error(f"Compilation failed: {e}")
      return 1
    finally:
      _write_trace(compilation, json_trace_path)

  console.print(source, markup=False, highlight=False, soft_wrap=True)
  return 0


def handle_run(
  script: str,
  sam: str,
  names: Optional[str] = None,
  args: Sequence[str] = (),
) -> int:
  """
  Handles the 'run' command: compiles an interface implementation and calls it.

  Args:
      script: Script text, or the path of a script file.
      sam: ``module:Interface`` to implement.
      names: Comma-separated parameter names for the implementation.
      args: Positional arguments, evaluated as Python literals.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  with ScriptCompiler(CompilerConfig.load()) as compiler:
    compilation = _start(compiler, script)
    try:
      sam_pass = _configure(compilation, True, sam, names, None, False)
      cls = compilation.to_class()
    except (CompilationError, cst.ParserSyntaxError) as e:
      log_error(f"Compilation failed: {e}")
      return 1
    try:
      result = getattr(cls(), sam_pass.method_name)(*parse_arguments(args))
    except Exception as e:
      log_error(f"{type(e).__name__}: {e}")
      return 1

  log_success(f"{compilation.unit_name}.{sam_pass.method_name} returned")
  console.print(repr(result), markup=False, highlight=False)
  return 0
