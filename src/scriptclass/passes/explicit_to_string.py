"""
Explicit String Conversion Pass.

Generates a ``__str__`` method that describes the instance: its class header,
an identity token, every non-static field and, for classes compiled from a
script, the script text itself::

    class ScriptClass_000_001(BinaryOperator[Number])@7f3a2c {a=1, b=2}, compiled from script: "x + y"

The script text is re-read when the pass runs. If that fails the text is
reported as ``<unknown>``; compilation carries on.
"""

from typing import List

import libcst as cst

from scriptclass.core.nodes import ClassDefinition, MethodDefinition
from scriptclass.core.types import TOP, TypeRef, type_ref
from scriptclass.enums import Modifier, PassKind
from scriptclass.passes.base import CompilationPass, PassContext
from scriptclass.runtime import Script

STR_METHOD = "__str__"
UNKNOWN_SOURCE = "<unknown>"

_HIDDEN_BASES = (TOP, TypeRef(Script))


def escape_source(text: str) -> str:
  """
  Escapes text for display inside double quotes.

  Args:
      text: Raw script text.

  Returns:
      str: Backslashes, quotes, control and non-ASCII characters escaped.
  """
  return text.encode("unicode_escape").decode("ascii").replace('"', '\\"')


def class_header(class_def: ClassDefinition) -> str:
  """
  Renders ``class Name(Base, Interface[Arg])``, omitting ``object`` and ``Script``.
  """
  bases = [b for b in (class_def.superclass, *class_def.interfaces) if b not in _HIDDEN_BASES]
  if not bases:
    return f"class {class_def.name}"
  return f"class {class_def.name}({', '.join(str(b) for b in bases)})"


class ExplicitToString(CompilationPass):
  """
  Adds a descriptive ``__str__`` to the main class.
  """

  kind = PassKind.EXPLICIT_TO_STRING
  main_class_only = True

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    footer = ""
    if class_def.is_script:
      text = context.source.read_source()
      if text is None:
        context.trace.log_warning(f"Source of {context.source.name} could not be re-read")
      if not text:
        footer = f", compiled from script: {UNKNOWN_SOURCE}"
      else:
        footer = f', compiled from script: "{escape_source(text)}"'

    method = MethodDefinition(
      name=STR_METHOD,
      return_type=type_ref(str),
      body=[cst.parse_statement("return " + " + ".join(self._parts(class_def, footer)))],
      modifiers=Modifier.PUBLIC,
    )
    class_def.add_method(method)

  def _parts(self, class_def: ClassDefinition, footer: str) -> List[str]:
    parts = [repr(class_header(class_def) + "@"), "format(id(self), 'x')"]
    separator = " {"
    for field_def in class_def.fields:
      if field_def.is_static or field_def.is_synthetic:
        continue
      parts.append(repr(f"{separator}{field_def.name}="))
      parts.append(f"str(self.{field_def.name})")
      separator = ", "
    closing = "}" if separator == ", " else " {}"
    parts.append(repr(closing + footer))
    return parts
