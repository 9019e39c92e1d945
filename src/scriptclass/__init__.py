"""
scriptclass Package.

Lowers Python scripts into classes through a pipeline of composable class
definition passes, a static type check and a loader.

Usage
-----

Simple Script Class
^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import scriptclass as sc
    Greeter = sc.compile_class("print('hello')")
    Greeter().run()

Functional Interface Implementation
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from scriptclass import ScriptCompiler, pojo_class, sam_implementation, param_names

    with ScriptCompiler() as compiler:
        sam = sam_implementation(BinaryOperator[Number])
        Adder = compiler.compile("x + y").then_apply(
            pojo_class(), sam, param_names(sam.sam_impl, "x", "y")
        ).to_class()

    Adder().apply(3, 4)  # 7
"""

from typing import Optional

from scriptclass.compiler.pipeline import PhaseScheduler, ScriptCompilation, ScriptCompiler
from scriptclass.config import CompilerConfig
from scriptclass.core.deferred import DeferredMethodRef
from scriptclass.core.errors import (
  ClassNotFoundError,
  CompilationError,
  IllegalStateError,
  InvalidArgumentError,
  NarrowingError,
  TypeCheckError,
)
from scriptclass.core.types import GenericArg, TypeRef, type_ref, wildcard
from scriptclass.enums import CompilePhase, Modifier
from scriptclass.passes import (
  CompilationPass,
  explicit_to_string,
  fields_from_map,
  imports,
  param_names,
  pojo_class,
  sam_implementation,
  static_imports,
  vars_from_map,
)

__version__ = "0.1.0"


def compile_class(text: str, *passes: CompilationPass, config: Optional[CompilerConfig] = None) -> type:
  """
  Compiles a script into a class with the given passes applied.

  This is a convenience wrapper around ``ScriptCompiler``. For several
  compilations, or to keep the generated modules registered, use a
  ``ScriptCompiler`` directly.

  Args:
      text (str): The script source.
      *passes: Passes to register, in order.
      config (CompilerConfig, optional): Compiler settings.

  Returns:
      type: The main class of the compiled unit.

  Raises:
      CompilationError: If the pipeline rejects the script.
  """
  with ScriptCompiler(config) as compiler:
    return compiler.compile(text).then_apply(*passes).to_class()


__all__ = [
  "compile_class",
  "ScriptCompiler",
  "ScriptCompilation",
  "PhaseScheduler",
  "CompilerConfig",
  "CompilePhase",
  "Modifier",
  "CompilationPass",
  "DeferredMethodRef",
  "TypeRef",
  "GenericArg",
  "type_ref",
  "wildcard",
  "imports",
  "static_imports",
  "pojo_class",
  "sam_implementation",
  "param_names",
  "vars_from_map",
  "fields_from_map",
  "explicit_to_string",
  "CompilationError",
  "InvalidArgumentError",
  "IllegalStateError",
  "ClassNotFoundError",
  "TypeCheckError",
  "NarrowingError",
  "__version__",
]
