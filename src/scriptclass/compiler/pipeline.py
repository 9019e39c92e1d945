"""
Compilation Pipeline and Phase Scheduler.

``ScriptCompiler`` is the long-lived entry point. Each call to ``compile``
creates a ``ScriptCompilation`` with a unique unit name, to which passes are
registered before the unit is turned into a class:

.. code-block:: python

    with ScriptCompiler() as compiler:
        compilation = compiler.compile("x + y")
        sam = sam_implementation(BinaryOperator[Number])
        compilation.then_apply(pojo_class(), sam, param_names(sam.sam_impl, "x", "y"))
        adder = compilation.to_class()()
        adder.apply(3, 4)  # 7

Phase order: PARSING, then the AST phases from CONVERSION to
CLASS_GENERATION (passes of one phase run in registration order, the static
type check closes INSTRUCTION_SELECTION), then OUTPUT (rendering and optional
persistence) and FINALIZATION (loading).
"""

import itertools
import logging
import threading
from pathlib import Path
from types import ModuleType, TracebackType
from typing import IO, Any, Dict, List, Mapping, Optional, Tuple, Type, Union

from scriptclass.compiler.backend import ClassBackend
from scriptclass.compiler.checker import StaticTypeCheck
from scriptclass.compiler.frontend import ScriptFrontend
from scriptclass.compiler.loader import ScriptClassLoader
from scriptclass.compiler.source import SourceUnit
from scriptclass.config import CompilerConfig
from scriptclass.core.deferred import DeferredMethodRef, MethodSupplier
from scriptclass.core.errors import IllegalStateError, InvalidArgumentError
from scriptclass.core.nodes import ModuleDefinition
from scriptclass.core.tracer import TraceLogger
from scriptclass.enums import CompilePhase
from scriptclass.passes import (
  CompilationPass,
  PassContext,
  SamImplementation,
  explicit_to_string,
  fields_from_map,
  imports,
  param_names,
  pojo_class,
  sam_implementation,
  static_imports,
  vars_from_map,
)

logger = logging.getLogger(__name__)

_COMPILER_SEQ = itertools.count()
_COMPILER_SEQ_LOCK = threading.Lock()


class PhaseScheduler:
  """
  Orders passes by phase and applies them to every class of a unit.

  The static type check is a fixed terminal stage of INSTRUCTION_SELECTION;
  it cannot be removed or reordered.
  """

  def __init__(self) -> None:
    self._passes: List[CompilationPass] = []
    self._type_check = StaticTypeCheck()

  def register(self, compilation_pass: CompilationPass) -> None:
    if not isinstance(compilation_pass, CompilationPass):
      raise InvalidArgumentError(f"Expected: CompilationPass\nFound: {compilation_pass!r}")
    if compilation_pass.phase not in CompilePhase.ast_phases():
      raise InvalidArgumentError(
        f"Expected: pass bound to an AST phase\nFound: {compilation_pass!r} bound to {compilation_pass.phase.name}"
      )
    self._passes.append(compilation_pass)

  @property
  def passes(self) -> List[CompilationPass]:
    """Registered passes, in registration order."""
    return list(self._passes)

  def stages(self) -> List[Tuple[CompilePhase, List[CompilationPass]]]:
    """
    Groups the passes by phase.

    Returns:
        List[Tuple[CompilePhase, List[CompilationPass]]]: Every AST phase in
        order, each with its passes in registration order.
    """
    stages = []
    for phase in CompilePhase.ast_phases():
      bound = [p for p in self._passes if p.phase is phase]
      if phase is CompilePhase.INSTRUCTION_SELECTION:
        bound.append(self._type_check)
      stages.append((phase, bound))
    return stages

  def run(self, source: SourceUnit, module: ModuleDefinition, trace: TraceLogger) -> None:
    """
    Applies every stage to the unit.

    Args:
        source: The unit's source.
        module: The parsed unit, mutated in place.
        trace: Receives phase and pass events.
    """
    for phase, passes in self.stages():
      trace.start_phase(phase.name)
      try:
        for compilation_pass in passes:
          for class_def in list(module.classes):
            is_main = module.is_main(class_def)
            if compilation_pass.main_class_only and not is_main:
              trace.log_pass(compilation_pass.name, class_def.name, applied=False)
              continue
            logger.debug("Applying %s to %s", compilation_pass.name, class_def.name)
            compilation_pass.call(PassContext(source, module, is_main, trace), class_def)
            trace.log_pass(compilation_pass.name, class_def.name)
      finally:
        trace.end_phase()


class ScriptCompilation:
  """
  One unit of compilation: a script plus the passes that shape its class.

  Not thread safe. A compilation that failed is left partially mutated and
  should be discarded.
  """

  def __init__(self, source: SourceUnit, backend: ClassBackend) -> None:
    self.source = source
    self._backend = backend
    self._frontend = ScriptFrontend()
    self._scheduler = PhaseScheduler()
    self._class: Optional[type] = None
    self.trace = TraceLogger()
    self.last_pass: Optional[CompilationPass] = None

  @property
  def unit_name(self) -> str:
    return self.source.name

  def then_apply(self, *passes: CompilationPass) -> "ScriptCompilation":
    """
    Registers passes. Passes of the same phase run in registration order.

    Returns:
        ScriptCompilation: self, for chaining.

    Raises:
        InvalidArgumentError: If an argument is not a pass bound to an AST phase.
    """
    for compilation_pass in passes:
      self._scheduler.register(compilation_pass)
      self.last_pass = compilation_pass
    return self

  def then_apply_imports(self, *objects: Any) -> "ScriptCompilation":
    return self.then_apply(imports(*objects))

  def then_apply_static_imports(self, owner: ModuleType, *members: str) -> "ScriptCompilation":
    return self.then_apply(static_imports(owner, *members))

  def then_apply_pojo_class(self) -> "ScriptCompilation":
    return self.then_apply(pojo_class())

  def then_apply_sam_implementation(self, interface: Any) -> "ScriptCompilation":
    """Registers a single abstract method implementation; see ``sam_impl``."""
    return self.then_apply(sam_implementation(interface))

  def then_apply_param_names(self, method: MethodSupplier, *names: str) -> "ScriptCompilation":
    return self.then_apply(param_names(method, *names))

  def then_apply_vars_from_map(
    self, method: MethodSupplier, map_param_name: str, variable_definitions: Mapping[str, Any]
  ) -> "ScriptCompilation":
    return self.then_apply(vars_from_map(method, map_param_name, variable_definitions))

  def then_apply_fields_from_map(self, field_definitions: Mapping[str, Any]) -> "ScriptCompilation":
    return self.then_apply(fields_from_map(field_definitions))

  def then_apply_explicit_to_string(self) -> "ScriptCompilation":
    return self.then_apply(explicit_to_string())

  @property
  def sam_impl(self) -> DeferredMethodRef:
    """
    The method generated by the most recently registered ``SamImplementation``.

    Raises:
        IllegalStateError: If no such pass is registered.
    """
    for compilation_pass in reversed(self._scheduler.passes):
      if isinstance(compilation_pass, SamImplementation):
        return compilation_pass.sam_impl
    raise IllegalStateError(f"Expected: SamImplementation registered on {self.unit_name}\nFound: none")

  def to_source(self) -> str:
    """
    Runs every phase up to code generation and returns the rendered source.
    """
    return self._output(self._convert(), persist=False)[0]

  def to_class(self) -> type:
    """
    Compiles the unit and loads it.

    Returns:
        type: The main class. Later calls return the same class.

    Raises:
        CompilationError: For pipeline failures, including a missing main class.
        libcst.ParserSyntaxError: If the script does not parse.
    """
    if self._class is not None:
      return self._class

    module = self._convert()
    source, path = self._output(module, persist=True)

    self.trace.start_phase(CompilePhase.FINALIZATION.name)
    try:
      self._class = self._backend.load(module, source, path)
    finally:
      self.trace.end_phase()
    logger.info("Compiled %s", self.unit_name)
    return self._class

  def trace_events(self) -> List[Dict[str, Any]]:
    """Exports the recorded trace events."""
    return self.trace.export()

  def _convert(self) -> ModuleDefinition:
    self.trace.start_phase(CompilePhase.PARSING.name)
    try:
      module = self._frontend.parse(self.source)
    finally:
      self.trace.end_phase()
    self._scheduler.run(self.source, module, self.trace)
    return module

  def _output(self, module: ModuleDefinition, persist: bool) -> Tuple[str, Optional[Path]]:
    self.trace.start_phase(CompilePhase.OUTPUT.name)
    try:
      source = self._backend.render(module)
      path = self._backend.persist(self.unit_name, source) if persist else None
      self.trace.log_emission(self.unit_name, str(path) if path is not None else None)
      return source, path
    finally:
      self.trace.end_phase()

  def __repr__(self) -> str:
    return f"ScriptCompilation({self.unit_name}, passes={self._scheduler.passes})"


class ScriptCompiler:
  """
  Creates compilations and owns the loader their classes live in.

  Unit names combine a process-wide compiler number with a per-compiler
  compilation number, both allocated atomically.
  """

  def __init__(self, config: Optional[CompilerConfig] = None) -> None:
    """
    Args:
        config: Settings; loaded from pyproject.toml and the environment when omitted.
    """
    self.config = config if config is not None else CompilerConfig.load()
    with _COMPILER_SEQ_LOCK:
      self.compiler_seq_no = next(_COMPILER_SEQ)
    self._compilations_seq = itertools.count()
    self._lock = threading.Lock()
    self.loader = ScriptClassLoader()
    self._backend = ClassBackend(self.loader, self.config)

  def next_unit_name(self) -> str:
    with self._lock:
      compilation_seq_no = next(self._compilations_seq)
    return f"{self.config.class_name_prefix}_{self.compiler_seq_no:03d}_{compilation_seq_no:03d}"

  def compile(self, text: str) -> ScriptCompilation:
    """
    Starts a compilation of script text.

    Args:
        text: Python source of the script.

    Returns:
        ScriptCompilation: A compilation with no passes registered.
    """
    return ScriptCompilation(SourceUnit.from_text(self.next_unit_name(), text), self._backend)

  def compile_file(self, path: Union[str, Path]) -> ScriptCompilation:
    """Starts a compilation of a script file, read with the configured encoding."""
    source = SourceUnit.from_file(self.next_unit_name(), Path(path), encoding=self.config.source_encoding)
    return ScriptCompilation(source, self._backend)

  def compile_stream(self, stream: IO[str]) -> ScriptCompilation:
    """Starts a compilation of a one-shot text stream; its text cannot be re-read later."""
    return ScriptCompilation(SourceUnit.from_stream(self.next_unit_name(), stream), self._backend)

  def close(self) -> None:
    """Releases loader registrations. Loaded classes keep working."""
    self.loader.close()

  def __enter__(self) -> "ScriptCompiler":
    return self

  def __exit__(
    self,
    exc_type: Optional[Type[BaseException]],
    exc: Optional[BaseException],
    tb: Optional[TracebackType],
  ) -> None:
    self.close()
