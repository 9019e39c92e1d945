"""
Single Abstract Method Implementation Pass.

Makes the main class implement a functional interface: an abstract class
with exactly one abstract method. The script's top-level statements become
the body of that method.

Generic type variables of the interface are resolved against the generic
arguments of the given reference, so implementing ``BinaryOperator[Number]``
where ``apply(self, a: T, b: T) -> T`` yields ``apply(self, a: Number, b:
Number) -> Number``.

The generated method is published through ``sam_impl`` for passes that
rename its parameters or prepend statements to it.
"""

import ast
import inspect
import typing
from typing import Any, Callable, Dict, List, Optional, TypeVar

import libcst as cst

from scriptclass.core.deferred import DeferredMethodRef
from scriptclass.core.errors import InvalidArgumentError
from scriptclass.core.nodes import ClassDefinition, FormalParameter, MethodDefinition
from scriptclass.core.symbols import TypeTable
from scriptclass.core.types import GenericArg, TypeRef, generics_spec, type_ref
from scriptclass.enums import CompilePhase, Modifier, ParameterKind, PassKind
from scriptclass.passes.base import CompilationPass, PassContext
from scriptclass.runtime import declared_exceptions


def _single_abstract_method(interface: TypeRef) -> str:
  """
  Returns the name of the only abstract method of ``interface``.

  Raises:
      InvalidArgumentError: If the reference is not a functional interface.
  """
  base = interface.base
  if isinstance(base, type) and inspect.isabstract(base):
    abstract = sorted(base.__abstractmethods__)
    if len(abstract) == 1 and inspect.isfunction(inspect.getattr_static(base, abstract[0], None)):
      return abstract[0]
  raise InvalidArgumentError(f"Expected: Single Abstract Method (functional) interface\nFound: {interface}")


def _literal_default(value: Any) -> Optional[cst.BaseExpression]:
  try:
    text = repr(value)
    if ast.literal_eval(text) == value:
      return cst.parse_expression(text)
  except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
    pass
  return None


class SamImplementation(CompilationPass):
  """
  Implements the single abstract method of an interface from the script body.
  """

  kind = PassKind.SAM_IMPLEMENTATION
  main_class_only = True

  def __init__(self, interface: Any, phase: CompilePhase = CompilePhase.CONVERSION) -> None:
    """
    Args:
        interface: The functional interface, as a class, a subscripted generic
            (``BinaryOperator[Number]``) or a ``TypeRef``.
        phase: Phase to run in.

    Raises:
        InvalidArgumentError: If ``interface`` has not exactly one abstract method.
    """
    super().__init__(phase)
    if typing.get_origin(interface) is not None:
      interface = TypeRef.from_annotation(interface)
    self.interface = type_ref(interface)
    self.method_name = _single_abstract_method(self.interface)
    self._sam_impl = DeferredMethodRef(self.name)

  @property
  def sam_impl(self) -> DeferredMethodRef:
    """The generated method; resolving it before the pass ran fails."""
    return self._sam_impl

  def get_sam_impl(self) -> MethodDefinition:
    return self._sam_impl.resolve()

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    method = self._implementation(context)
    class_def.add_interface(self.interface)
    class_def.add_method(method)
    self._sam_impl.publish(method)

  def _implementation(self, context: PassContext) -> MethodDefinition:
    func = getattr(self.interface.base, self.method_name)
    spec = generics_spec(self.interface)
    try:
      hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as e:
      raise InvalidArgumentError(f"Expected: resolvable annotations on {self.interface}.{self.method_name}\nFound: {e}") from e

    return_hint = hints.get("return", inspect.Parameter.empty)
    return MethodDefinition(
      name=self.method_name,
      parameters=self._parameters(func, hints, spec, context.types),
      return_type=None if return_hint is inspect.Parameter.empty else TypeRef.from_annotation(return_hint, spec),
      body=list(context.module.statements),
      modifiers=Modifier.PUBLIC,
      exceptions=[TypeRef(e) for e in declared_exceptions(func)],
      annotations={k: v for k, v in vars(func).items() if not k.startswith("__")},
      docstring=inspect.getdoc(func),
    )

  def _parameters(
    self,
    func: Callable[..., Any],
    hints: Dict[str, Any],
    spec: Dict[TypeVar, GenericArg],
    types: TypeTable,
  ) -> List[FormalParameter]:
    # The first parameter is the receiver.
    declared = list(inspect.signature(func).parameters.values())[1:]
    parameters = []
    for param in declared:
      hint = hints.get(param.name, inspect.Parameter.empty)
      metadata: List[Any] = []
      if typing.get_origin(hint) is typing.Annotated:
        metadata = list(hint.__metadata__)

      default = None
      if param.default is not inspect.Parameter.empty:
        default = _literal_default(param.default)
        if default is None:
          default = cst.Name(types.name_of(param.default, preferred=f"{param.name}_default"))

      parameters.append(
        FormalParameter(
          name=param.name,
          type=None if hint is inspect.Parameter.empty else TypeRef.from_annotation(hint, spec),
          default=default,
          kind=ParameterKind(param.kind.name.lower()),
          annotations=metadata,
        )
      )
    return parameters
