"""
Static Type Check.

The terminal stage of every compilation. It renders the unit the way the
backend will, then verifies each class definition:

- every name a method reads is bound somewhere (locally, in the class, by an
  import, as a builtin or as a name injected into the generated module);
- concrete classes implement every abstract method of their bases with the
  same number of positional parameters;
- ``ABSTRACT`` methods only appear in classes with an abstract base;
- constructors and methods are not defined twice;
- ``FINAL`` fields are only assigned in constructors and ``Final`` locals are
  never reassigned;
- methods declaring a return type return or raise.

All problems of a class are collected before a single ``TypeCheckError`` is
raised.
"""

import abc
import collections
import inspect
import logging
from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

import libcst as cst
from libcst.metadata import CodeRange, MetadataWrapper, PositionProvider

from scriptclass.compiler.renderer import DEFAULT_RECEIVER, SourceRenderer, unresolved_names, with_implicit_return
from scriptclass.core.errors import TypeCheckError
from scriptclass.core.nodes import ClassDefinition, MethodDefinition, ModuleDefinition
from scriptclass.enums import CompilePhase, ParameterKind, PassKind
from scriptclass.passes.base import CompilationPass, PassContext

logger = logging.getLogger(__name__)

_MODULE_GLOBALS = {"__name__", "__file__", "__doc__", "__spec__", "__loader__", "__package__", "__builtins__"}
_POSITIONAL_KINDS = (ParameterKind.POSITIONAL_ONLY, ParameterKind.POSITIONAL_OR_KEYWORD)


class _ScopedVisitor(cst.CSTVisitor):
  """Visits one function body without descending into nested scopes."""

  def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
    return False

  def visit_Lambda(self, node: cst.Lambda) -> bool:
    return False

  def visit_ClassDef(self, node: cst.ClassDef) -> bool:
    return False


class _ExitFinder(_ScopedVisitor):
  def __init__(self) -> None:
    super().__init__()
    self.found = False

  def visit_Return(self, node: cst.Return) -> None:
    self.found = True

  def visit_Raise(self, node: cst.Raise) -> None:
    self.found = True


def _target_names(target: cst.BaseExpression) -> Iterable[cst.BaseExpression]:
  if isinstance(target, (cst.Tuple, cst.List)):
    for element in target.elements:
      yield from _target_names(element.value)
  elif isinstance(target, cst.StarredElement):
    yield from _target_names(target.value)
  else:
    yield target


class _AssignmentCollector(_ScopedVisitor):
  """Records every assignment target of a function body, in order."""

  def __init__(self) -> None:
    super().__init__()
    self.targets: List[Tuple[cst.BaseExpression, Optional[cst.Annotation]]] = []

  def _add(self, target: cst.BaseExpression, annotation: Optional[cst.Annotation] = None) -> None:
    for name in _target_names(target):
      self.targets.append((name, annotation))

  def visit_Assign(self, node: cst.Assign) -> None:
    for target in node.targets:
      self._add(target.target)

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    self._add(node.target, node.annotation)

  def visit_AugAssign(self, node: cst.AugAssign) -> None:
    self._add(node.target)

  def visit_NamedExpr(self, node: cst.NamedExpr) -> None:
    self._add(node.target)

  def visit_For(self, node: cst.For) -> None:
    self._add(node.target)

  def visit_WithItem(self, node: cst.WithItem) -> None:
    if node.asname is not None:
      self._add(node.asname.name)


def _is_final_annotation(annotation: cst.Annotation, final_names: Set[str]) -> bool:
  expr = annotation.annotation
  if isinstance(expr, cst.Subscript):
    expr = expr.value
  if isinstance(expr, cst.Name):
    return expr.value in final_names
  return isinstance(expr, cst.Attribute) and expr.attr.value == "Final"


def _assignments(body: Sequence[cst.BaseStatement]) -> List[Tuple[cst.BaseExpression, Optional[cst.Annotation]]]:
  collector = _AssignmentCollector()
  for statement in body:
    statement.visit(collector)
  return collector.targets


class StaticTypeCheck(CompilationPass):
  """
  Verifies class definitions before code generation.

  Always bound to ``INSTRUCTION_SELECTION``; the pipeline runs it after every
  pass registered for that phase.
  """

  kind = PassKind.STATIC_TYPE_CHECK

  def __init__(self) -> None:
    super().__init__(CompilePhase.INSTRUCTION_SELECTION)

  def call(self, context: PassContext, class_def: ClassDefinition) -> None:
    """
    Raises:
        TypeCheckError: If the class has at least one problem.
    """
    problems: List[str] = []
    problems += self._unresolved_names(context.module, class_def)
    problems += self._abstract_methods(class_def)
    problems += self._duplicates(class_def)
    problems += self._final_assignments(context.module, class_def)
    problems += self._missing_returns(class_def)

    if problems:
      raise TypeCheckError(class_def.name, problems)
    logger.debug("Static type check passed for %s", class_def.name)

  def _unresolved_names(self, module: ModuleDefinition, class_def: ClassDefinition) -> List[str]:
    wrapper = MetadataWrapper(SourceRenderer(module).render())
    positions = wrapper.resolve(PositionProvider)
    class_node = next(
      (n for n in wrapper.module.body if isinstance(n, cst.ClassDef) and n.name.value == class_def.name), None
    )
    if class_node is None:
      return []

    known = module.types.known_globals | set(module.star_import_names) | _MODULE_GLOBALS
    class_range = positions[class_node]
    methods = [(n.name.value, positions[n]) for n in class_node.body.body if isinstance(n, cst.FunctionDef)]

    problems = []
    names = sorted(unresolved_names(wrapper), key=lambda n: (positions[n].start.line, positions[n].start.column))
    for name in names:
      where = positions[name]
      if name.value in known or not _contains(class_range, where):
        continue
      owner = next((m for m, r in methods if _contains(r, where)), None)
      location = f"{class_def.name}.{owner}" if owner else class_def.name
      problems.append(f"Unresolved name '{name.value}' in {location} (line {where.start.line})")
    return problems

  def _abstract_methods(self, class_def: ClassDefinition) -> List[str]:
    bases = [r.base for r in (class_def.superclass, *class_def.interfaces) if isinstance(r.base, type)]
    problems = []

    if not any(isinstance(b, abc.ABCMeta) for b in bases):
      for method in class_def.methods:
        if method.is_abstract:
          problems.append(f"Abstract method {method} in {class_def.name}, which has no abstract base")

    if any(m.is_abstract for m in class_def.methods):
      return problems

    implemented = {m.name: m for m in class_def.methods}
    for base in bases:
      for name in sorted(getattr(base, "__abstractmethods__", ())):
        method = implemented.get(name)
        if method is None:
          problems.append(f"{class_def.name} does not implement abstract method {base.__qualname__}.{name}")
          continue
        expected = _positional_arity(getattr(base, name))
        if expected is not None and not _accepts_positional(method, expected):
          found = sum(1 for p in method.parameters if p.kind in _POSITIONAL_KINDS)
          problems.append(
            f"{method} implements {base.__qualname__}.{name} with {found} positional parameter(s), expected {expected}"
          )
    return problems

  def _duplicates(self, class_def: ClassDefinition) -> List[str]:
    problems = []
    if len(class_def.constructors) > 1:
      problems.append(f"{class_def.name} declares {len(class_def.constructors)} constructors")
    counts = collections.Counter(m.name for m in class_def.methods)
    for name, count in counts.items():
      if count > 1:
        problems.append(f"{class_def.name} declares method {name} {count} times")
    return problems

  def _final_assignments(self, module: ModuleDefinition, class_def: ClassDefinition) -> List[str]:
    final_fields = {f.name for f in class_def.fields if f.is_final and not f.is_static}
    final_names = {module.types.typing_form("Final"), "Final"}
    problems = []

    for method in [*class_def.constructors, *class_def.methods]:
      receiver = method.metadata.get("receiver", DEFAULT_RECEIVER)
      final_locals: Set[str] = set()
      for target, annotation in _assignments(method.body):
        if isinstance(target, cst.Attribute) and isinstance(target.value, cst.Name):
          if target.value.value == receiver and target.attr.value in final_fields and not method.is_constructor:
            problems.append(f"Final field {class_def.name}.{target.attr.value} assigned in {method}")
        elif isinstance(target, cst.Name):
          if target.value in final_locals:
            problems.append(f"Final variable {target.value} reassigned in {method}")
          elif annotation is not None and _is_final_annotation(annotation, final_names):
            final_locals.add(target.value)
    return problems

  def _missing_returns(self, class_def: ClassDefinition) -> List[str]:
    problems = []
    for method in class_def.methods:
      if method.is_abstract or not _declares_value(method):
        continue
      finder = _ExitFinder()
      for statement in with_implicit_return(list(method.body)):
        statement.visit(finder)
      if not finder.found:
        problems.append(f"{method} declares a return type but never returns a value")
    return problems


def _contains(outer: CodeRange, inner: CodeRange) -> bool:
  return (outer.start.line, outer.start.column) <= (inner.start.line, inner.start.column) and (
    inner.end.line,
    inner.end.column,
  ) <= (outer.end.line, outer.end.column)


def _declares_value(method: MethodDefinition) -> bool:
  if method.return_type is not None:
    return not method.return_type.is_none
  returns = method.source_returns
  return returns is not None and not (isinstance(returns, cst.Name) and returns.value == "None")


def _positional_arity(func: Any) -> Optional[int]:
  try:
    params = list(inspect.signature(func).parameters.values())
  except (TypeError, ValueError):
    return None
  if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
    return None
  positional = [p for p in params if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]
  return max(len(positional) - 1, 0)


def _accepts_positional(method: MethodDefinition, expected: int) -> bool:
  if any(p.kind is ParameterKind.VAR_POSITIONAL for p in method.parameters):
    return True
  return sum(1 for p in method.parameters if p.kind in _POSITIONAL_KINDS) == expected
