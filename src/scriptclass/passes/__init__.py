"""
Transformation Passes Package.

Each pass variant is a ``CompilationPass`` subclass. The factory functions
below are the short way to build them:

.. code-block:: python

    sam = sam_implementation(type_ref(BinaryOperator, Number))
    compilation.then_apply(pojo_class(), sam, param_names(sam.sam_impl, "x", "y"))
"""

from types import ModuleType
from typing import Any, Mapping

from scriptclass.core.deferred import MethodSupplier
from scriptclass.enums import CompilePhase
from scriptclass.passes.base import CompilationPass, PassContext
from scriptclass.passes.explicit_to_string import ExplicitToString
from scriptclass.passes.fields_from_map import FinalFieldsFromMapParam
from scriptclass.passes.imports import ImportsPass
from scriptclass.passes.param_names import MethodParamNames
from scriptclass.passes.pojo_class import PojoClass
from scriptclass.passes.sam_implementation import SamImplementation
from scriptclass.passes.vars_from_map import VariablesFromMapParam

CONVERSION = CompilePhase.CONVERSION


def imports(*objects: Any, phase: CompilePhase = CONVERSION) -> ImportsPass:
  """Imports modules, classes or functions into the generated module."""
  return ImportsPass(phase).add_imports(*objects)


def static_imports(owner: ModuleType, *members: str, phase: CompilePhase = CONVERSION) -> ImportsPass:
  """Imports members of ``owner``, or all of its public names when none are given."""
  return ImportsPass(phase).add_static_imports(owner, *members)


def pojo_class(phase: CompilePhase = CONVERSION) -> PojoClass:
  return PojoClass(phase)


def sam_implementation(interface: Any, phase: CompilePhase = CONVERSION) -> SamImplementation:
  return SamImplementation(interface, phase)


def param_names(method: MethodSupplier, *names: str, phase: CompilePhase = CONVERSION) -> MethodParamNames:
  return MethodParamNames(method, *names, phase=phase)


def vars_from_map(
  method: MethodSupplier,
  map_param_name: str,
  variable_definitions: Mapping[str, Any],
  phase: CompilePhase = CONVERSION,
) -> VariablesFromMapParam:
  return VariablesFromMapParam(method, map_param_name, variable_definitions, phase)


def fields_from_map(field_definitions: Mapping[str, Any], phase: CompilePhase = CONVERSION) -> FinalFieldsFromMapParam:
  return FinalFieldsFromMapParam(field_definitions, phase)


def explicit_to_string(phase: CompilePhase = CONVERSION) -> ExplicitToString:
  return ExplicitToString(phase)


__all__ = [
  "CompilationPass",
  "PassContext",
  "ImportsPass",
  "PojoClass",
  "SamImplementation",
  "MethodParamNames",
  "VariablesFromMapParam",
  "FinalFieldsFromMapParam",
  "ExplicitToString",
  "imports",
  "static_imports",
  "pojo_class",
  "sam_implementation",
  "param_names",
  "vars_from_map",
  "fields_from_map",
  "explicit_to_string",
]
