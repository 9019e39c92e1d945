"""
Script Class Loader.

Executes generated source as a fresh module and keeps track of the classes it
defines, so they can be looked up by qualified name (``module.Class``).

Modules are registered in ``sys.modules`` and their source in ``linecache``
for readable tracebacks and ``inspect.getsource``. ``close`` removes those
registrations; classes already handed out keep working.
"""

import linecache
import logging
import sys
import types
from typing import Any, Dict, List, Mapping, Optional

from scriptclass.core.errors import ClassNotFoundError

logger = logging.getLogger(__name__)


class ScriptClassLoader:
  """
  Defines generated modules and resolves their classes.
  """

  def __init__(self) -> None:
    self._modules: Dict[str, types.ModuleType] = {}
    self._classes: Dict[str, type] = {}

  def define_module(
    self,
    name: str,
    source: str,
    filename: Optional[str] = None,
    namespace: Optional[Mapping[str, Any]] = None,
  ) -> types.ModuleType:
    """
    Compiles and executes generated source as module ``name``.

    Args:
        name: Module name; also used as the file name if none is given.
        source: Python source text.
        filename: File name shown in tracebacks.
        namespace: Objects to bind in the module before executing it.

    Returns:
        types.ModuleType: The executed module.

    Raises:
        SyntaxError: If the source does not compile.
        Exception: Anything raised while executing the module body.
    """
    filename = filename or f"<{name}>"
    code = compile(source, filename, "exec")

    module = types.ModuleType(name)
    module.__file__ = filename
    module.__dict__.update(namespace or {})
    linecache.cache[filename] = (len(source), None, source.splitlines(keepends=True), filename)
    sys.modules[name] = module
    try:
      exec(code, module.__dict__)
    except BaseException:
      del sys.modules[name]
      linecache.cache.pop(filename, None)
      raise

    self._modules[name] = module
    defined = {attr: value for attr, value in vars(module).items() if isinstance(value, type) and value.__module__ == name}
    for attr, cls in defined.items():
      self._classes[f"{name}.{attr}"] = cls
    logger.debug("Defined module %s with %d class(es)", name, len(defined))
    return module

  def load_class(self, qualified_name: str) -> type:
    """
    Returns a class defined by a generated module.

    Args:
        qualified_name: ``module.ClassName``.

    Raises:
        ClassNotFoundError: If no such class was defined.
    """
    try:
      return self._classes[qualified_name]
    except KeyError:
      raise ClassNotFoundError(f"Class not found: {qualified_name}") from None

  @property
  def module_names(self) -> List[str]:
    return list(self._modules)

  def close(self) -> None:
    """Unregisters every module this loader defined."""
    for name, module in self._modules.items():
      if sys.modules.get(name) is module:
        del sys.modules[name]
      linecache.cache.pop(module.__file__, None)
    self._modules.clear()
    self._classes.clear()
