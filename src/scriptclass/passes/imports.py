"""
Imports Pass.

Adds import statements to the generated module, so the script can refer to
classes and functions by their short names without importing them itself.

Two flavours are supported:

* ``add_imports``: ``import module`` for modules and ``from module import
  Name`` for classes and functions.
* ``add_static_imports``: ``from module import a, b`` for named members, or
  ``from module import *`` when no member is given. The public names of a
  star-imported module are reported to the static type check.
"""

from types import ModuleType
from typing import Any, List

import libcst as cst

from scriptclass.core.errors import InvalidArgumentError
from scriptclass.core.nodes import ClassDefinition
from scriptclass.enums import CompilePhase, PassKind
from scriptclass.passes.base import CompilationPass, PassContext


def _public_names(module: ModuleType) -> List[str]:
  exported = getattr(module, "__all__", None)
  if exported is not None:
    return [str(n) for n in exported]
  return [n for n in vars(module) if not n.startswith("_")]


def _import_statement(obj: Any) -> str:
  if isinstance(obj, ModuleType):
    return f"import {obj.__name__}"

  module_name = getattr(obj, "__module__", None)
  qualname = getattr(obj, "__qualname__", None)
  if isinstance(module_name, str) and isinstance(qualname, str) and qualname.isidentifier():
    return f"from {module_name} import {qualname}"

  raise InvalidArgumentError(f"Expected: module, or class or function defined at module level\nFound: {obj!r}")


class ImportsPass(CompilationPass):
  """
  Contributes import statements to the generated module.

  The statements are validated when added and emitted when the pass runs.
  """

  kind = PassKind.IMPORTS
  main_class_only = True

  def __init__(self, phase: CompilePhase = CompilePhase.CONVERSION) -> None:
    super().__init__(phase)
    self._statements: List[str] = []
    self._star_modules: List[ModuleType] = []

  def add_imports(self, *objects: Any) -> "ImportsPass":
    """
    Imports modules, classes or functions by name.

    Args:
        *objects: Modules, or classes and functions defined at module level.

    Returns:
        ImportsPass: self, for chaining.

    Raises:
        InvalidArgumentError: If an object cannot be imported by name.
    """
    statements = [_import_statement(obj) for obj in objects]
    self._statements.extend(statements)
    return self

  def add_static_imports(self, owner: ModuleType, *members: str) -> "ImportsPass":
    """
    Imports members of a module into the generated module namespace.

    Args:
        owner: The module to import from.
        *members: Member names. All public members when omitted.

    Returns:
        ImportsPass: self, for chaining.

    Raises:
        InvalidArgumentError: If ``owner`` is not a module or lacks a member.
    """
    if not isinstance(owner, ModuleType):
      raise InvalidArgumentError(f"Expected: module\nFound: {owner!r}")

    if not members:
      self._statements.append(f"from {owner.__name__} import *")
      self._star_modules.append(owner)
      return self

    missing = [m for m in members if not hasattr(owner, m)]
    if missing:
      raise InvalidArgumentError(f"Expected: members of {owner.__name__}\nFound: {', '.join(missing)}")
    self._statements.append(f"from {owner.__name__} import {', '.join(members)}")
    return self

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    module = context.module
    for statement in self._statements:
      module.imports.append(cst.parse_statement(statement))
    for star_module in self._star_modules:
      module.star_import_names.extend(_public_names(star_module))
