"""
Class Backend.

Generates code for a finished unit: renders the class model, optionally
persists the source under the configured target directory and loads the
result through the ``ScriptClassLoader``.
"""

import logging
import types
from pathlib import Path
from typing import Optional

from scriptclass.compiler.loader import ScriptClassLoader
from scriptclass.compiler.renderer import SourceRenderer
from scriptclass.config import CompilerConfig
from scriptclass.core.errors import ClassNotFoundError, CompilationError
from scriptclass.core.nodes import ModuleDefinition

logger = logging.getLogger(__name__)


class ClassBackend:
  """
  Turns a ``ModuleDefinition`` into loaded classes.
  """

  def __init__(self, loader: ScriptClassLoader, config: CompilerConfig) -> None:
    self.loader = loader
    self.config = config

  def render(self, module: ModuleDefinition) -> str:
    """Renders the unit to Python source."""
    source = SourceRenderer(module).code()
    if self.config.log_generated_source:
      logger.debug("Generated source of %s:\n%s", module.main_class_name, source)
    return source

  def persist(self, unit_name: str, source: str) -> Optional[Path]:
    """
    Writes ``<target_directory>/<unit_name>.py``.

    Returns:
        Optional[Path]: The written file, or None when no target directory is configured.
    """
    target = self.config.target_directory
    if target is None:
      return None
    target.mkdir(parents=True, exist_ok=True)
    path = target / f"{unit_name}.py"
    path.write_text(source, encoding="utf-8")
    logger.info("Wrote %s", path)
    return path

  def load(self, module: ModuleDefinition, source: str, path: Optional[Path] = None) -> type:
    """
    Executes the source and returns the unit's main class.

    Args:
        module: The unit the source was rendered from.
        source: Rendered source.
        path: Persisted file, used as the traceback file name.

    Raises:
        CompilationError: If the main class is missing after execution.
    """
    unit_name = module.main_class_name
    loaded = self.loader.define_module(
      unit_name,
      source,
      filename=str(path) if path is not None else None,
      namespace=module.types.namespace(),
    )
    self._apply_annotations(module, loaded)

    try:
      return self.loader.load_class(f"{unit_name}.{module.main_class_name}")
    except ClassNotFoundError as e:
      raise CompilationError(f"Generated unit {unit_name} does not define its main class") from e

  def emit(self, module: ModuleDefinition) -> type:
    """Renders, persists (if configured) and loads the unit in one step."""
    source = self.render(module)
    return self.load(module, source, self.persist(module.main_class_name, source))

  def _apply_annotations(self, module: ModuleDefinition, loaded: types.ModuleType) -> None:
    for class_def in module.classes:
      cls = getattr(loaded, class_def.name, None)
      if cls is None:
        continue
      for method in [*class_def.constructors, *class_def.methods]:
        if not method.annotations:
          continue
        member = cls.__dict__.get(method.name)
        func = getattr(member, "__func__", member)
        for key, value in method.annotations.items():
          setattr(func, key, value)
