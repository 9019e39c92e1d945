"""
Final Fields From Map Pass.

Adds private final fields to the main class together with a public
constructor taking ``params: Mapping[str, object]`` that assigns each field
from the mapping through a checked cast, in declaration order.
"""

from collections.abc import Mapping as MappingABC
from typing import Any, Mapping, Optional

import libcst as cst

from scriptclass.compiler.frontend import BINDING_PARAM
from scriptclass.core.nodes import ClassDefinition, FormalParameter, MethodDefinition
from scriptclass.core.types import type_ref
from scriptclass.enums import CompilePhase, Modifier, PassKind
from scriptclass.passes.base import CompilationPass, PassContext
from scriptclass.passes.vars_from_map import typed_definitions

PARAMS_NAME = "params"


class FinalFieldsFromMapParam(CompilationPass):
  """
  Declares map-backed final fields and the constructor that fills them.

  On a script class the generated constructor takes over the binding
  constructor: it accepts the optional binding after ``params`` and hands it
  to ``Script`` before assigning the fields. Any other constructor is kept, so
  a second constructor of the same arity fails the static type check.
  """

  kind = PassKind.FIELDS_FROM_MAP
  main_class_only = True

  def __init__(self, field_definitions: Mapping[str, Any], phase: CompilePhase = CompilePhase.CONVERSION) -> None:
    """
    Args:
        field_definitions: Field names mapped to classes or ``TypeRef``, in
            declaration order.
        phase: Phase to run in.
    """
    super().__init__(phase)
    self.field_definitions = typed_definitions(field_definitions)

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    types = context.types
    narrow = types.helper("narrow")

    assignments = []
    for name, declared in self.field_definitions.items():
      class_def.add_field(name, Modifier.PRIVATE | Modifier.FINAL, declared)
      assignments.append(
        cst.parse_statement(f"self.{name} = {narrow}({PARAMS_NAME}.get({name!r}), {types.erasure(declared)})")
      )

    params = FormalParameter(name=PARAMS_NAME, type=type_ref(MappingABC, str, object))
    binding_constructor = _binding_constructor(class_def)
    if binding_constructor is None:
      class_def.add_constructor(Modifier.PUBLIC, [params], [], assignments)
      return

    class_def.remove_constructor(binding_constructor)
    class_def.add_constructor(
      binding_constructor.modifiers,
      [params, *binding_constructor.parameters],
      list(binding_constructor.exceptions),
      [*binding_constructor.body, *assignments],
    )


def _binding_constructor(class_def: ClassDefinition) -> Optional[MethodDefinition]:
  if not class_def.is_script:
    return None
  return next((c for c in class_def.constructors if [p.name for p in c.parameters] == [BINDING_PARAM]), None)
