"""
Variables From Map Pass.

Declares typed, final local variables at the start of a method, each one
initialized from a string-keyed mapping parameter with a checked cast:

.. code-block:: python

    def apply_as_float(self, params: Mapping[str, object]) -> float:
        x: Final[int] = narrow(params.get("x"), int)
        y: Final[float] = narrow(params.get("y"), float)
        ...

A missing key reads as None, which fails the cast unless the declared type
admits None.
"""

from typing import Any, Dict, List, Mapping

import libcst as cst

from scriptclass.core.deferred import MethodSupplier
from scriptclass.core.errors import InvalidArgumentError
from scriptclass.core.nodes import ClassDefinition, MethodDefinition
from scriptclass.core.symbols import TypeTable
from scriptclass.core.types import TypeRef, is_string_keyed_mapping, type_ref
from scriptclass.enums import CompilePhase, PassKind
from scriptclass.passes.base import CompilationPass, PassContext


def typed_definitions(definitions: Mapping[str, Any]) -> Dict[str, TypeRef]:
  """
  Normalizes a name to type mapping, keeping its order.

  Args:
      definitions: Names mapped to classes or ``TypeRef``.

  Returns:
      Dict[str, TypeRef]: The same entries with descriptor values.

  Raises:
      InvalidArgumentError: If a name is not an identifier or a type is unsupported.
  """
  typed: Dict[str, TypeRef] = {}
  for name, declared in definitions.items():
    if not isinstance(name, str) or not name.isidentifier():
      raise InvalidArgumentError(f"Expected: identifier\nFound: {name!r}")
    typed[name] = type_ref(declared)
  return typed


class VariablesFromMapParam(CompilationPass):
  """
  Prepends map-backed final local variables to a method body.
  """

  kind = PassKind.VARS_FROM_MAP

  def __init__(
    self,
    method_supplier: MethodSupplier,
    map_param_name: str,
    variable_definitions: Mapping[str, Any],
    phase: CompilePhase = CompilePhase.CONVERSION,
  ) -> None:
    """
    Args:
        method_supplier: Yields the target method when the pass runs.
        map_param_name: Name of the ``Mapping[str, ...]`` parameter to read.
        variable_definitions: Variable names mapped to their types, in
            declaration order.
        phase: Phase to run in.
    """
    super().__init__(phase)
    self._method_supplier = method_supplier
    self.map_param_name = map_param_name
    self.variable_definitions = typed_definitions(variable_definitions)

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    method = self._method_supplier()
    if method.declaring_class is not class_def:
      return

    self._require_map_parameter(method)
    definitions = self._definitions(context.types)
    method.body[0:0] = definitions

  def _require_map_parameter(self, method: MethodDefinition) -> None:
    param = method.parameter(self.map_param_name)
    if param is None or not is_string_keyed_mapping(param.type):
      raise InvalidArgumentError(
        f"Expected: Method with parameter Mapping[str, ?] {self.map_param_name}\nFound: {method}"
      )

  def _definitions(self, types: TypeTable) -> List[cst.BaseStatement]:
    narrow = types.helper("narrow")
    return [
      cst.parse_statement(
        f"{name}: {types.final(declared)} = {narrow}({self.map_param_name}.get({name!r}), {types.erasure(declared)})"
      )
      for name, declared in self.variable_definitions.items()
    ]
