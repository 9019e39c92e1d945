"""
Parameter Renaming Pass.

Renames the formal parameters of a method produced by an earlier pass, so the
script can use names of its own choosing (``x + y``) instead of the names
declared by the interface (``a``, ``b``).
"""

import dataclasses
import keyword
from typing import List, Sequence

from scriptclass.compiler.renderer import DEFAULT_RECEIVER
from scriptclass.core.deferred import MethodSupplier
from scriptclass.core.errors import IllegalStateError, InvalidArgumentError
from scriptclass.core.nodes import ClassDefinition, FormalParameter, MethodDefinition
from scriptclass.enums import CompilePhase, PassKind
from scriptclass.passes.base import CompilationPass, PassContext


def _validate_names(names: Sequence[str]) -> None:
  invalid = [n for n in names if not isinstance(n, str) or not n.isidentifier() or keyword.iskeyword(n)]
  if invalid:
    raise InvalidArgumentError(f"Expected: parameter names\nFound: {', '.join(repr(n) for n in invalid)}")
  if DEFAULT_RECEIVER in names:
    raise InvalidArgumentError(f"Expected: parameter names other than the receiver\nFound: {DEFAULT_RECEIVER}")
  duplicates = sorted({n for n in names if names.count(n) > 1})
  if duplicates:
    raise InvalidArgumentError(f"Expected: distinct parameter names\nFound: duplicates {', '.join(duplicates)}")


class MethodParamNames(CompilationPass):
  """
  Replaces parameter names positionally, keeping everything else.
  """

  kind = PassKind.PARAM_NAMES

  def __init__(
    self,
    method_supplier: MethodSupplier,
    *param_names: str,
    phase: CompilePhase = CompilePhase.CONVERSION,
  ) -> None:
    """
    Args:
        method_supplier: Yields the target method when the pass runs.
        *param_names: New names, one per parameter, in order.
        phase: Phase to run in.

    Raises:
        InvalidArgumentError: If a name is not an identifier or repeats.
    """
    super().__init__(phase)
    _validate_names(param_names)
    self._method_supplier = method_supplier
    self.param_names = list(param_names)

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    method = self._method_supplier()
    if method.declaring_class is not class_def:
      return

    method.parameters = self._renamed(method)

  def _renamed(self, method: MethodDefinition) -> List[FormalParameter]:
    if len(method.parameters) != len(self.param_names):
      raise IllegalStateError(
        f"Expected: method with {len(self.param_names)} parameter(s) ({', '.join(self.param_names)})\n"
        f"Found: {method} with {len(method.parameters)} parameter(s)"
      )
    receiver = method.metadata.get("receiver", DEFAULT_RECEIVER)
    if not method.is_static and receiver in self.param_names:
      raise IllegalStateError(f"Expected: parameter names other than the receiver {receiver}\nFound: {method}")
    return [
      dataclasses.replace(p, name=new_name, annotations=list(p.annotations), metadata=dict(p.metadata))
      for p, new_name in zip(method.parameters, self.param_names)
    ]
