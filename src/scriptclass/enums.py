"""
Enumerations for scriptclass.

This module defines the standard enumerations shared by the class model, the
transformation passes and the phase scheduler.
"""

from enum import Enum, Flag, auto


class CompilePhase(int, Enum):
  """
  Named stages of a compilation, in execution order.

  Only the AST phases (``CONVERSION`` .. ``CLASS_GENERATION``) accept passes;
  the remaining phases are driven by the pipeline itself.
  """

  INITIALIZATION = 1
  PARSING = 2
  CONVERSION = 3
  SEMANTIC_ANALYSIS = 4
  CANONICALIZATION = 5
  INSTRUCTION_SELECTION = 6
  CLASS_GENERATION = 7
  OUTPUT = 8
  FINALIZATION = 9

  @classmethod
  def ast_phases(cls) -> "list[CompilePhase]":
    """
    Returns the phases during which passes may mutate class definitions.

    Returns:
        list[CompilePhase]: Phases from CONVERSION to CLASS_GENERATION.
    """
    return [p for p in cls if cls.CONVERSION <= p <= cls.CLASS_GENERATION]


class Modifier(Flag):
  """
  Access and behaviour flags of classes, methods, fields and parameters.
  """

  NONE = 0
  PUBLIC = auto()
  PROTECTED = auto()
  PRIVATE = auto()
  STATIC = auto()
  FINAL = auto()
  ABSTRACT = auto()
  SYNTHETIC = auto()


class ParameterKind(str, Enum):
  """
  Binding style of a formal parameter (mirrors ``inspect.Parameter`` kinds).
  """

  POSITIONAL_ONLY = "positional_only"
  POSITIONAL_OR_KEYWORD = "positional_or_keyword"
  VAR_POSITIONAL = "var_positional"
  KEYWORD_ONLY = "keyword_only"
  VAR_KEYWORD = "var_keyword"


class PassKind(str, Enum):
  """
  The closed set of transformation pass variants.
  """

  IMPORTS = "imports"
  POJO_CLASS = "pojo_class"
  SAM_IMPLEMENTATION = "sam_implementation"
  PARAM_NAMES = "param_names"
  VARS_FROM_MAP = "vars_from_map"
  FIELDS_FROM_MAP = "fields_from_map"
  EXPLICIT_TO_STRING = "explicit_to_string"
  STATIC_TYPE_CHECK = "static_type_check"
