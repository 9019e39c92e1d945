"""
Plain Class Pass.

Strips the script scaffolding from the main class: the ``Script`` base
class, the binding constructor and the ``run`` method. Only the functions
defined at the script's top level remain as methods.
"""

from scriptclass.core.nodes import ClassDefinition
from scriptclass.core.types import TOP
from scriptclass.enums import PassKind
from scriptclass.passes.base import CompilationPass, PassContext


class PojoClass(CompilationPass):
  """
  Turns the script class into a plain class deriving from ``object``.
  """

  kind = PassKind.POJO_CLASS
  main_class_only = True

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    class_def.superclass = TOP

    for constructor in list(class_def.constructors):
      class_def.remove_constructor(constructor)
    for method in list(class_def.methods):
      class_def.remove_method(method)

    for method in context.module.methods:
      class_def.add_method(method)
