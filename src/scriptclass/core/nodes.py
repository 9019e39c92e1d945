"""
Class Definition Model.

Mutable nodes describing the unit under compilation. The front-end creates
them from the parsed script, passes mutate them in phase order and the
backend renders them back into Python source.

Method bodies and default values are LibCST nodes, so passes can splice in
statements built with ``libcst.parse_statement``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import libcst as cst
from libcst.metadata import CodeRange

from scriptclass.core.symbols import TypeTable
from scriptclass.core.types import TOP, TypeRef
from scriptclass.enums import Modifier, ParameterKind

CONSTRUCTOR_NAME = "__init__"


@dataclass(eq=False)
class FormalParameter:
  """
  A formal parameter of a method or constructor (``self`` excluded).
  """

  name: str
  """Parameter name."""

  type: Optional[TypeRef] = None
  """Declared type; None for an untyped parameter."""

  default: Optional[cst.BaseExpression] = None
  """Default value expression."""

  kind: ParameterKind = ParameterKind.POSITIONAL_OR_KEYWORD
  """Binding style."""

  modifiers: Modifier = Modifier.NONE
  """Flags such as FINAL."""

  closure_shared: bool = False
  """True when a nested function or lambda captures the parameter."""

  annotations: List[Any] = field(default_factory=list)
  """``typing.Annotated`` metadata attached to the declared type."""

  source_annotation: Optional[cst.BaseExpression] = None
  """Annotation as written in the script, used when ``type`` is None."""

  position: Optional[CodeRange] = None
  """Location in the script, when parsed from it."""

  metadata: Dict[str, Any] = field(default_factory=dict)
  """Free-form node metadata."""

  def __str__(self) -> str:
    return f"{self.name}: {self.type}" if self.type is not None else self.name


@dataclass(eq=False)
class FieldDefinition:
  """
  An instance (or static) field of a class definition.
  """

  name: str
  modifiers: Modifier = Modifier.PRIVATE
  type: TypeRef = TOP
  initializer: Optional[cst.BaseExpression] = None
  """Class-level value, only meaningful for STATIC fields."""

  @property
  def is_static(self) -> bool:
    return Modifier.STATIC in self.modifiers

  @property
  def is_synthetic(self) -> bool:
    return Modifier.SYNTHETIC in self.modifiers

  @property
  def is_final(self) -> bool:
    return Modifier.FINAL in self.modifiers


@dataclass(eq=False)
class MethodDefinition:
  """
  A method or constructor. The body is an ordered list of statements.
  """

  name: str
  parameters: List[FormalParameter] = field(default_factory=list)
  return_type: Optional[TypeRef] = None
  """Declared return type; None for dynamically typed, ``NONE`` for void."""

  body: List[cst.BaseStatement] = field(default_factory=list)
  modifiers: Modifier = Modifier.PUBLIC
  exceptions: List[TypeRef] = field(default_factory=list)
  """Declared exception types."""

  annotations: Dict[str, Any] = field(default_factory=dict)
  """Function attributes applied to the loaded function."""

  docstring: Optional[str] = None
  decorators: List[cst.Decorator] = field(default_factory=list)
  """Decorators written in the script."""

  source_returns: Optional[cst.BaseExpression] = None
  """Return annotation as written in the script, used when ``return_type`` is None."""

  position: Optional[CodeRange] = None
  metadata: Dict[str, Any] = field(default_factory=dict)
  declaring_class: Optional["ClassDefinition"] = field(default=None, repr=False)

  @property
  def is_abstract(self) -> bool:
    return Modifier.ABSTRACT in self.modifiers

  @property
  def is_static(self) -> bool:
    return Modifier.STATIC in self.modifiers

  @property
  def is_constructor(self) -> bool:
    return self.name == CONSTRUCTOR_NAME

  def parameter(self, name: str) -> Optional[FormalParameter]:
    """Returns the formal parameter with the given name, if declared."""
    return next((p for p in self.parameters if p.name == name), None)

  def __str__(self) -> str:
    owner = self.declaring_class.name if self.declaring_class else "<unattached>"
    params = ", ".join(str(p) for p in self.parameters)
    returns = f" -> {self.return_type}" if self.return_type is not None else ""
    return f"{owner}.{self.name}({params}){returns}"


@dataclass(eq=False)
class ClassDefinition:
  """
  A class under construction.
  """

  name: str
  superclass: TypeRef = TOP
  interfaces: List[TypeRef] = field(default_factory=list)
  fields: List[FieldDefinition] = field(default_factory=list)
  constructors: List[MethodDefinition] = field(default_factory=list)
  methods: List[MethodDefinition] = field(default_factory=list)
  modifiers: Modifier = Modifier.PUBLIC
  is_script: bool = False
  """True for the class synthesized from a script's top-level code."""

  statements: List[cst.BaseStatement] = field(default_factory=list)
  """Class-body statements the model does not interpret; emitted verbatim."""

  decorators: List[cst.Decorator] = field(default_factory=list)
  source_bases: List[cst.Arg] = field(default_factory=list)
  """Base class list as written in the script; replaces superclass and interfaces when rendering."""

  docstring: Optional[str] = None
  position: Optional[CodeRange] = None

  def add_interface(self, interface: TypeRef) -> None:
    """Adds an implemented interface unless already present."""
    if interface not in self.interfaces:
      self.interfaces.append(interface)

  def add_field(
    self,
    name: str,
    modifiers: Modifier,
    type: TypeRef,
    initializer: Optional[cst.BaseExpression] = None,
  ) -> FieldDefinition:
    """
    Appends a field declaration.

    Args:
        name: Field name.
        modifiers: Field flags.
        type: Declared type.
        initializer: Class-level value for static fields.

    Returns:
        FieldDefinition: The added field.
    """
    definition = FieldDefinition(name=name, modifiers=modifiers, type=type, initializer=initializer)
    self.fields.append(definition)
    return definition

  def get_field(self, name: str) -> Optional[FieldDefinition]:
    return next((f for f in self.fields if f.name == name), None)

  def add_constructor(
    self,
    modifiers: Modifier,
    parameters: List[FormalParameter],
    exceptions: List[TypeRef],
    body: List[cst.BaseStatement],
  ) -> MethodDefinition:
    """
    Appends a constructor built from the given parts.

    Returns:
        MethodDefinition: The constructor, attached to this class.
    """
    constructor = MethodDefinition(
      name=CONSTRUCTOR_NAME,
      parameters=parameters,
      return_type=None,
      body=body,
      modifiers=modifiers,
      exceptions=exceptions,
    )
    constructor.declaring_class = self
    self.constructors.append(constructor)
    return constructor

  def remove_constructor(self, constructor: MethodDefinition) -> None:
    self.constructors.remove(constructor)

  def add_method(self, method: MethodDefinition) -> None:
    """Appends a method and makes this class its declaring class."""
    method.declaring_class = self
    self.methods.append(method)

  def remove_method(self, method: MethodDefinition) -> None:
    self.methods.remove(method)

  def get_method(self, name: str) -> Optional[MethodDefinition]:
    return next((m for m in self.methods if m.name == name), None)

  @property
  def member_names(self) -> List[str]:
    """Names of every field and method, in declaration order."""
    return [f.name for f in self.fields] + [m.name for m in self.methods]


@dataclass(eq=False)
class ModuleDefinition:
  """
  The parsed compilation unit: the main class, auxiliary classes and the
  script's top-level code.
  """

  main_class_name: str
  classes: List[ClassDefinition] = field(default_factory=list)
  methods: List[MethodDefinition] = field(default_factory=list)
  """Functions defined at the top level of the script."""

  statements: List[cst.BaseStatement] = field(default_factory=list)
  """The script's top-level statement block."""

  imports: List[cst.SimpleStatementLine] = field(default_factory=list)
  """Import statements, written in the script or added by passes."""

  star_import_names: List[str] = field(default_factory=list)
  """Names made visible by star imports."""

  types: TypeTable = field(default_factory=TypeTable, repr=False)
  """Names referenced by generated code."""

  @property
  def main_class(self) -> ClassDefinition:
    """The class designated as the unit's entry point."""
    for class_def in self.classes:
      if class_def.name == self.main_class_name:
        return class_def
    raise LookupError(f"Module has no main class named {self.main_class_name}")

  def is_main(self, class_def: ClassDefinition) -> bool:
    return class_def.name == self.main_class_name
