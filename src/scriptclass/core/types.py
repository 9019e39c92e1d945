"""
Type Reference Builder.

Constructs generic type descriptors (``TypeRef``) from heterogeneous inputs:
plain classes, existing descriptors and generic arguments, including
wildcards with upper bounds.

The number of generic arguments given to ``type_ref`` must match the declared
generic arity of the base type. The check happens at construction so that a
malformed descriptor never reaches a pass.

.. code-block:: python

    from collections.abc import Mapping
    from scriptclass.core.types import type_ref, wildcard

    params = type_ref(Mapping, str, wildcard(Number))
    str(params)  # 'Mapping[str, ? extends Number]'
"""

import collections
import collections.abc as cabc
import types
import typing
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, TypeVar, Union

from scriptclass.core.errors import InvalidArgumentError

NoneType = type(None)

# Generic arity of builtin and standard library containers. These do not
# expose ``__parameters__`` the way ``typing.Generic`` subclasses do.
_FIXED_ARITY: Dict[Any, int] = {
  dict: 2,
  list: 1,
  set: 1,
  frozenset: 1,
  type: 1,
  collections.OrderedDict: 2,
  collections.defaultdict: 2,
  collections.ChainMap: 2,
  collections.Counter: 1,
  collections.deque: 1,
  cabc.Mapping: 2,
  cabc.MutableMapping: 2,
  cabc.ItemsView: 2,
  cabc.KeysView: 1,
  cabc.ValuesView: 1,
  cabc.Sequence: 1,
  cabc.MutableSequence: 1,
  cabc.Set: 1,
  cabc.MutableSet: 1,
  cabc.Collection: 1,
  cabc.Container: 1,
  cabc.Iterable: 1,
  cabc.Iterator: 1,
  cabc.Reversible: 1,
  cabc.Generator: 3,
  cabc.Awaitable: 1,
  cabc.Coroutine: 3,
  cabc.AsyncIterable: 1,
  cabc.AsyncIterator: 1,
  cabc.AsyncGenerator: 2,
}

# Bases whose argument count is not fixed; their arity is never checked.
_VARIADIC: Tuple[Any, ...] = (tuple, cabc.Callable, typing.Union)


def declared_arity(base: Any) -> Optional[int]:
  """
  Returns the number of generic parameters a base type declares.

  Args:
      base: A class or ``typing.Union``.

  Returns:
      Optional[int]: The arity, or None when the base accepts any number of
      arguments.
  """
  if any(base is v for v in _VARIADIC):
    return None
  if base in _FIXED_ARITY:
    return _FIXED_ARITY[base]
  params = getattr(base, "__parameters__", None)
  if isinstance(params, tuple):
    return len(params)
  return 0


def _base_name(base: Any) -> str:
  if base is typing.Union:
    return "Union"
  if base is NoneType:
    return "None"
  return getattr(base, "__qualname__", None) or getattr(base, "__name__", None) or repr(base)


@dataclass(frozen=True)
class TypeRef:
  """
  A type reference together with zero or more generic type arguments.
  """

  base: Any
  """The raw type (a class, or ``typing.Union``)."""

  args: Tuple["GenericArg", ...] = ()
  """Generic arguments in declaration order."""

  @property
  def name(self) -> str:
    """Display name of the raw type."""
    return _base_name(self.base)

  @property
  def is_generic(self) -> bool:
    return bool(self.args)

  @property
  def is_top(self) -> bool:
    """True for the universal top type (``object``)."""
    return self.base is object and not self.args

  @property
  def is_none(self) -> bool:
    """True for the void type (``NoneType``)."""
    return self.base is NoneType

  def is_subtype_of(self, cls: type) -> bool:
    """
    Checks whether the raw type is a subclass of ``cls``.

    Args:
        cls: The candidate supertype.

    Returns:
        bool: False for non-class bases such as ``typing.Union``.
    """
    return isinstance(self.base, type) and issubclass(self.base, cls)

  def erasure(self) -> Union[type, Tuple[type, ...]]:
    """
    Returns the runtime check target with generic arguments erased.

    Returns:
        Union[type, Tuple[type, ...]]: The raw class, or a tuple of classes
        for unions.
    """
    if self.base is typing.Union:
      members = []
      for arg in self.args:
        erased = arg.resolved().erasure()
        members.extend(erased if isinstance(erased, tuple) else (erased,))
      return tuple(dict.fromkeys(members))
    return self.base

  def __str__(self) -> str:
    if not self.args:
      return self.name
    return f"{self.name}[{', '.join(str(a) for a in self.args)}]"

  @classmethod
  def from_annotation(cls, annotation: Any, spec: Optional[Dict[TypeVar, "GenericArg"]] = None) -> "TypeRef":
    """
    Converts a runtime annotation into a descriptor.

    Type variables are resolved against ``spec``; unbound ones fall back to
    their bound or to the top type. ``Annotated`` metadata is dropped, callers
    that need it read it before converting.

    Args:
        annotation: A value as returned by ``typing.get_type_hints``.
        spec: Bindings of type variables to generic arguments.

    Returns:
        TypeRef: The equivalent descriptor.
    """
    spec = spec or {}
    if annotation is None or annotation is NoneType:
      return NONE
    if annotation is Any:
      return TOP
    if isinstance(annotation, TypeVar):
      bound = spec.get(annotation)
      if bound is not None:
        return bound.resolved()
      if annotation.__bound__ is not None:
        return cls.from_annotation(annotation.__bound__, spec)
      return TOP

    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
      return cls.from_annotation(typing.get_args(annotation)[0], spec)
    if origin is typing.Union or origin is types.UnionType:
      return cls(typing.Union, tuple(_arg_from_annotation(a, spec) for a in typing.get_args(annotation)))
    if origin is not None:
      if not isinstance(origin, type):
        return TOP
      if origin is tuple or origin is cabc.Callable:
        return cls(origin)
      return cls(origin, tuple(_arg_from_annotation(a, spec) for a in typing.get_args(annotation)))

    if isinstance(annotation, type):
      return cls(annotation)
    return TOP


@dataclass(frozen=True)
class GenericArg:
  """
  One generic argument: either a concrete type or a wildcard with upper bounds.
  """

  type: Optional[TypeRef] = None
  """The argument type; None for wildcards."""

  upper_bounds: Tuple[TypeRef, ...] = ()
  """Upper bounds of a wildcard."""

  @property
  def is_wildcard(self) -> bool:
    return self.type is None

  def resolved(self) -> TypeRef:
    """
    Returns the type this argument stands for in a signature.

    Returns:
        TypeRef: The concrete type, or the first upper bound of a wildcard.
    """
    if self.type is not None:
      return self.type
    return self.upper_bounds[0] if self.upper_bounds else TOP

  def __str__(self) -> str:
    if self.type is not None:
      return str(self.type)
    if not self.upper_bounds or self.upper_bounds == (TOP,):
      return "?"
    return "? extends " + " & ".join(str(b) for b in self.upper_bounds)


TOP = TypeRef(object)
NONE = TypeRef(NoneType)


def _arg_from_annotation(annotation: Any, spec: Dict[TypeVar, GenericArg]) -> GenericArg:
  if isinstance(annotation, TypeVar) and annotation in spec:
    return spec[annotation]
  return GenericArg(TypeRef.from_annotation(annotation, spec))


def _safe_type_ref(obj: Any) -> TypeRef:
  if isinstance(obj, TypeRef):
    return obj
  if obj is None:
    return NONE
  if isinstance(obj, type) or obj is typing.Union:
    return TypeRef(obj)

  raise InvalidArgumentError(f"Expected: TypeRef or class\nFound: {obj!r}")


def _safe_generic_arg(obj: Any) -> GenericArg:
  if isinstance(obj, GenericArg):
    return obj
  return GenericArg(_safe_type_ref(obj))


def type_ref(base: Any, *generic_args: Any) -> TypeRef:
  """
  Constructs a ``TypeRef`` for the given raw type.

  Args:
      base: Target class (or an existing, non-generic ``TypeRef``).
      *generic_args: Generic type arguments. Number and order must match the
          generic declaration of ``base``. Supported: classes, ``TypeRef``
          and ``GenericArg`` (see ``wildcard``).

  Returns:
      TypeRef: A plain descriptor when no arguments are given, a generic one
      otherwise.

  Raises:
      InvalidArgumentError: If an argument is of an unsupported kind or the
          argument count does not match the declared arity.
  """
  raw = _safe_type_ref(base)
  if not generic_args:
    return raw
  if raw.args:
    raise InvalidArgumentError(f"Expected: raw type without generic arguments\nFound: {raw}")

  args = tuple(_safe_generic_arg(a) for a in generic_args)
  arity = declared_arity(raw.base)
  if arity is not None and arity != len(args):
    raise InvalidArgumentError(
      f"Expected: {arity} generic type argument(s) for {raw.name}\nFound: {len(args)} ({', '.join(str(a) for a in args)})"
    )
  return TypeRef(raw.base, args)


def wildcard(*upper_bounds: Any) -> GenericArg:
  """
  Constructs a ``GenericArg`` that represents a wildcard.

  Args:
      *upper_bounds: Upper bounds of the wildcard; ``object`` when omitted.
          Supported: classes and ``TypeRef``.

  Returns:
      GenericArg: The wildcard argument.
  """
  if not upper_bounds:
    return GenericArg(None, (TOP,))
  return GenericArg(None, tuple(_safe_type_ref(b) for b in upper_bounds))


def generics_spec(ref: TypeRef) -> Dict[TypeVar, GenericArg]:
  """
  Builds the type variable bindings of a (possibly generic) class reference.

  Bindings declared by parent classes through ``__orig_bases__`` are followed,
  so a method inherited from ``Base[T]`` by ``Child(Base[int])`` resolves to
  ``int``.

  Args:
      ref: The class reference, usually an interface.

  Returns:
      Dict[TypeVar, GenericArg]: Type variable bindings.
  """
  spec: Dict[TypeVar, GenericArg] = {}
  for tv, arg in zip(getattr(ref.base, "__parameters__", ()), ref.args):
    spec[tv] = arg
  _inherit_spec(ref.base, spec)
  return spec


def _inherit_spec(cls: Any, spec: Dict[TypeVar, GenericArg]) -> None:
  for orig in getattr(cls, "__orig_bases__", ()):
    origin = typing.get_origin(orig)
    if origin is None or origin is typing.Generic or origin is typing.Protocol:
      continue
    for tv, arg in zip(getattr(origin, "__parameters__", ()), typing.get_args(orig)):
      if tv not in spec:
        spec[tv] = _arg_from_annotation(arg, spec)
    _inherit_spec(origin, spec)


def is_string_keyed_mapping(ref: Optional[TypeRef]) -> bool:
  """
  Checks for a ``Mapping`` subtype whose first generic argument is ``str``.

  Args:
      ref: Descriptor to check; None never matches.

  Returns:
      bool: True for e.g. ``Mapping[str, object]`` or ``dict[str, int]``.
  """
  if ref is None or not ref.is_subtype_of(cabc.Mapping) or not ref.args:
    return False
  return ref.args[0].resolved().base is str
