"""
Interface definition for Compilation Passes.

Every pass is bound to one ``CompilePhase`` and is offered each class
definition of the unit in turn. The scheduler computes whether a class is the
unit's main class and skips main-class-only passes for auxiliary classes, so
passes never compare class names themselves.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from scriptclass.compiler.source import SourceUnit
from scriptclass.core.errors import InvalidArgumentError
from scriptclass.core.nodes import ClassDefinition, ModuleDefinition
from scriptclass.core.symbols import TypeTable
from scriptclass.core.tracer import TraceLogger
from scriptclass.enums import CompilePhase, PassKind


@dataclass
class PassContext:
  """
  What a pass sees besides the class definition it is offered.
  """

  source: SourceUnit
  module: ModuleDefinition
  is_main: bool
  """True when the offered class is the unit's main class."""

  trace: TraceLogger

  @property
  def types(self) -> TypeTable:
    """Name registry for types and helpers referenced by generated code."""
    return self.module.types


class CompilationPass(ABC):
  """
  Abstract contract for a transformation pass.

  Attributes:
      kind: Which variant of the closed pass set this is.
      main_class_only: If True, the scheduler offers only the main class.
      phase: The phase this pass runs in.
  """

  kind: ClassVar[PassKind]
  main_class_only: ClassVar[bool] = False

  def __init__(self, phase: CompilePhase = CompilePhase.CONVERSION) -> None:
    if phase not in CompilePhase.ast_phases():
      raise InvalidArgumentError(
        f"Expected: phase between {CompilePhase.CONVERSION.name} and {CompilePhase.CLASS_GENERATION.name}\n"
        f"Found: {phase.name}"
      )
    self.phase = phase

  @property
  def name(self) -> str:
    return type(self).__name__

  @abstractmethod
  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    """
    Inspects and mutates one class definition.

    Args:
        context: Compilation state shared by all passes.
        class_def: The class definition offered by the scheduler.
    """

  def __repr__(self) -> str:
    return f"{self.name}(phase={self.phase.name})"
