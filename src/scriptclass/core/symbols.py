"""
Type Table.

Allocates stable source-level names for every object generated code refers
to: classes used in annotations and narrowing casts, runtime helpers and
``typing.Annotated`` metadata values.

Objects importable from their defining module are emitted as ``from module
import Name`` statements. Anything else (classes defined inside functions,
plain values) is injected into the execution namespace of the generated
module and reported to the type checker as a known global.
"""

import builtins
import keyword
import re
import sys
import typing
from typing import Any, Dict, FrozenSet, Iterable, List, Set, Tuple

import libcst as cst

from scriptclass.core.types import NoneType, GenericArg, TypeRef

_RUNTIME_MODULE = "scriptclass.runtime"


def _is_builtin(obj: Any) -> bool:
  name = getattr(obj, "__name__", None)
  return isinstance(name, str) and getattr(builtins, name, None) is obj


def _is_importable(obj: Any) -> bool:
  module_name = getattr(obj, "__module__", None)
  qualname = getattr(obj, "__qualname__", None)
  if not isinstance(module_name, str) or not isinstance(qualname, str) or "." in qualname:
    return False
  module = sys.modules.get(module_name)
  return module is not None and getattr(module, qualname, None) is obj


def _identifier(preferred: str) -> str:
  name = re.sub(r"\W", "_", preferred) or "value"
  if name[0].isdigit() or keyword.iskeyword(name):
    name = f"_{name}"
  return name


class TypeTable:
  """
  Per-compilation registry of names referenced by generated code.

  Names in ``reserved`` (those the script binds itself) are never handed out,
  and builtins they shadow are referenced through an alias.
  """

  def __init__(self, reserved: Iterable[str] = ()) -> None:
    self._names: Dict[int, str] = {}
    self._objects: Dict[str, Any] = {}
    self._imports: Dict[str, Tuple[str, str]] = {}
    self._injected: Dict[str, Any] = {}
    self._reserved: FrozenSet[str] = frozenset(reserved)

  def _unique(self, preferred: str) -> str:
    base = _identifier(preferred)
    candidate = base
    counter = 1
    while candidate in self._objects or candidate in self._reserved or hasattr(builtins, candidate):
      candidate = f"{base}_{counter}"
      counter += 1
    return candidate

  def _remember(self, obj: Any, name: str) -> str:
    self._names[id(obj)] = name
    self._objects[name] = obj
    return name

  def name_of(self, obj: Any, preferred: str = "") -> str:
    """
    Returns the name generated code uses for ``obj``, registering it once.

    Args:
        obj: A class, function or arbitrary value.
        preferred: Name hint for values without a ``__name__``.

    Returns:
        str: A valid identifier bound to ``obj`` in the generated module.
    """
    known = self._names.get(id(obj))
    if known is not None:
      return known

    if _is_builtin(obj) and obj.__name__ not in self._reserved:
      return self._remember(obj, obj.__name__)

    name = self._unique(preferred or getattr(obj, "__name__", None) or type(obj).__name__.lower())
    if _is_importable(obj):
      self._imports[name] = (obj.__module__, obj.__qualname__)
    else:
      self._injected[name] = obj
    return self._remember(obj, name)

  def helper(self, name: str) -> str:
    """
    Returns the local name of a ``scriptclass.runtime`` helper (e.g. ``narrow``).
    """
    from scriptclass import runtime

    return self.name_of(getattr(runtime, name), preferred=name)

  def typing_form(self, name: str) -> str:
    """
    Returns the local name of a ``typing`` special form (e.g. ``Final``).
    """
    form = getattr(typing, name)
    known = self._names.get(id(form))
    if known is not None:
      return known
    alias = self._unique(name)
    self._imports[alias] = ("typing", name)
    return self._remember(form, alias)

  def annotation(self, ref: TypeRef) -> str:
    """
    Renders a descriptor as annotation source text.

    Args:
        ref: The type descriptor.

    Returns:
        str: e.g. ``Mapping[str, object]``.
    """
    if ref.is_none:
      return "None"
    if ref.base is typing.Union:
      name = self.typing_form("Union")
    else:
      name = self.name_of(ref.base)
    if not ref.args:
      return name
    return f"{name}[{', '.join(self._argument(a) for a in ref.args)}]"

  def _argument(self, arg: GenericArg) -> str:
    if not arg.is_wildcard:
      return self.annotation(arg.type)
    if len(arg.upper_bounds) == 1:
      return self.annotation(arg.upper_bounds[0])
    # Intersections have no annotation form
    return "object"

  def annotated(self, ref: TypeRef, metadata: List[Any]) -> str:
    """Renders ``Annotated[ref, *metadata]``, or the plain annotation without metadata."""
    plain = self.annotation(ref)
    if not metadata:
      return plain
    values = ", ".join(self.name_of(m, preferred="annotation") for m in metadata)
    return f"{self.typing_form('Annotated')}[{plain}, {values}]"

  def final(self, ref: TypeRef) -> str:
    """Renders ``Final[ref]``."""
    return f"{self.typing_form('Final')}[{self.annotation(ref)}]"

  def erasure(self, ref: TypeRef) -> str:
    """
    Renders the runtime check target of a descriptor.

    Args:
        ref: The type descriptor.

    Returns:
        str: A class name, or a tuple expression for unions.
    """
    erased = ref.erasure()
    if isinstance(erased, tuple):
      return "(" + "".join(f"{self._erased_name(e)}, " for e in erased) + ")"
    return self._erased_name(erased)

  def _erased_name(self, cls: type) -> str:
    if cls is NoneType:
      return f"{self.name_of(type)}(None)"
    return self.name_of(cls)

  def import_statements(self) -> List[cst.SimpleStatementLine]:
    """
    Builds import statements for every registered importable object.

    Returns:
        List[cst.SimpleStatementLine]: One ``from ... import`` per module, in
        registration order.
    """
    by_module: Dict[str, List[str]] = {}
    for alias, (module, attr) in self._imports.items():
      clause = attr if alias == attr else f"{attr} as {alias}"
      by_module.setdefault(module, []).append(clause)
    return [cst.parse_statement(f"from {module} import {', '.join(names)}") for module, names in by_module.items()]

  def namespace(self) -> Dict[str, Any]:
    """Objects that must be injected into the generated module's namespace."""
    return dict(self._injected)

  @property
  def known_globals(self) -> Set[str]:
    """Names resolvable at run time without an import statement."""
    return set(self._injected)
