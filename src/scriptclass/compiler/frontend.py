"""
Script Front-End.

Parses script text with LibCST and builds the initial class model:

* top-level ``def`` statements become module methods,
* top-level ``class`` statements become auxiliary class definitions,
* top-level imports are collected as module imports,
* every other statement belongs to the script's statement block.

The main class is synthesized around the statement block the way a script
host wraps it: it derives from ``scriptclass.runtime.Script``, takes the
binding in its constructor and runs the statements in ``run``. The module
methods are members of the main class as well.
"""

from typing import List, Mapping, Optional, Set, Tuple, Union

import libcst as cst
from libcst.metadata import CodeRange, FunctionScope, MetadataWrapper, PositionProvider, Scope, ScopeProvider

from scriptclass.compiler.source import SourceUnit
from scriptclass.core.nodes import (
  CONSTRUCTOR_NAME,
  ClassDefinition,
  FormalParameter,
  MethodDefinition,
  ModuleDefinition,
)
from scriptclass.core.symbols import TypeTable
from scriptclass.core.types import NONE, TypeRef, type_ref
from scriptclass.enums import Modifier, ParameterKind
from scriptclass.runtime import Script

RUN_METHOD = "run"
BINDING_PARAM = "binding"

_Body = List[cst.BaseStatement]


def _is_import(statement: cst.BaseStatement) -> bool:
  return isinstance(statement, cst.SimpleStatementLine) and all(
    isinstance(small, (cst.Import, cst.ImportFrom)) for small in statement.body
  )


def _decorator_name(decorator: cst.Decorator) -> Optional[str]:
  if isinstance(decorator.decorator, cst.Name):
    return decorator.decorator.value
  return None


def _suite_statements(suite: cst.BaseSuite) -> _Body:
  """Expands ``def f(): a; b`` one-liners into one statement line per small statement."""
  if isinstance(suite, cst.IndentedBlock):
    return list(suite.body)
  return [cst.SimpleStatementLine(body=[small.with_changes(semicolon=cst.MaybeSentinel.DEFAULT)]) for small in suite.body]


def _strip_docstring(body: _Body, docstring: Optional[str]) -> _Body:
  if docstring is None:
    return body
  return body[1:]


class ScriptFrontend:
  """
  Converts a ``SourceUnit`` into a ``ModuleDefinition``.

  Raises ``libcst.ParserSyntaxError`` unchanged for invalid scripts.
  """

  def parse(self, source: SourceUnit) -> ModuleDefinition:
    """
    Parses the script and builds the class model.

    Args:
        source: The script to parse.

    Returns:
        ModuleDefinition: The unit, main class first.
    """
    wrapper = MetadataWrapper(cst.parse_module(source.text))
    self._positions = wrapper.resolve(PositionProvider)
    self._scopes = wrapper.resolve(ScopeProvider)

    module = ModuleDefinition(main_class_name=source.name, types=TypeTable(reserved=_bound_names(self._scopes)))
    auxiliary: List[ClassDefinition] = []
    for statement in wrapper.module.body:
      if isinstance(statement, cst.FunctionDef):
        module.methods.append(self._method(statement, receiver=False))
      elif isinstance(statement, cst.ClassDef):
        auxiliary.append(self._class(statement))
      elif _is_import(statement):
        module.imports.append(statement)
      else:
        module.statements.append(statement)

    module.classes = [self._script_class(module), *auxiliary]
    return module

  def _script_class(self, module: ModuleDefinition) -> ClassDefinition:
    script_class = ClassDefinition(name=module.main_class_name, superclass=TypeRef(Script), is_script=True)

    binding = FormalParameter(
      name=BINDING_PARAM,
      type=type_ref(Union, type_ref(dict, str, object), None),
      default=cst.Name("None"),
    )
    script_class.add_constructor(
      Modifier.PUBLIC,
      [binding],
      [],
      [cst.parse_statement(f"super().{CONSTRUCTOR_NAME}({BINDING_PARAM})")],
    )
    script_class.add_method(MethodDefinition(name=RUN_METHOD, body=list(module.statements)))
    for method in module.methods:
      script_class.add_method(method)
    return script_class

  def _class(self, node: cst.ClassDef) -> ClassDefinition:
    body = _suite_statements(node.body)
    docstring = node.get_docstring()
    class_def = ClassDefinition(
      name=node.name.value,
      decorators=list(node.decorators),
      source_bases=list(node.bases) + list(node.keywords),
      docstring=docstring,
      position=self._position(node),
    )

    for statement in _strip_docstring(body, docstring):
      if isinstance(statement, cst.FunctionDef) and self._is_plain_method(statement):
        method = self._method(statement, receiver=True)
        if method.is_constructor:
          method.declaring_class = class_def
          class_def.constructors.append(method)
        else:
          class_def.add_method(method)
      else:
        class_def.statements.append(statement)
    return class_def

  def _is_plain_method(self, node: cst.FunctionDef) -> bool:
    names = [_decorator_name(d) for d in node.decorators]
    if "staticmethod" in names:
      return True
    # Instance methods need a receiver; classmethods and properties stay verbatim.
    return not node.decorators and bool(node.params.posonly_params or node.params.params)

  def _method(self, node: cst.FunctionDef, receiver: bool) -> MethodDefinition:
    decorators = list(node.decorators)
    modifiers = Modifier.PUBLIC
    static = [d for d in decorators if _decorator_name(d) == "staticmethod"]
    if static:
      modifiers |= Modifier.STATIC
      decorators = [d for d in decorators if d not in static]

    parameters = self._parameters(node)
    metadata = {}
    if receiver and not static:
      metadata["receiver"] = parameters.pop(0).name
    if node.asynchronous is not None:
      metadata["asynchronous"] = True

    docstring = node.get_docstring()
    returns = node.returns.annotation if node.returns is not None else None
    return MethodDefinition(
      name=node.name.value,
      parameters=parameters,
      return_type=NONE if _is_none(returns) else None,
      body=_strip_docstring(_suite_statements(node.body), docstring),
      modifiers=modifiers,
      docstring=docstring,
      decorators=decorators,
      source_returns=returns,
      position=self._position(node),
      metadata=metadata,
    )

  def _parameters(self, node: cst.FunctionDef) -> List[FormalParameter]:
    params = node.params
    ordered: List[Tuple[cst.Param, ParameterKind]] = []
    ordered += [(p, ParameterKind.POSITIONAL_ONLY) for p in params.posonly_params]
    ordered += [(p, ParameterKind.POSITIONAL_OR_KEYWORD) for p in params.params]
    if isinstance(params.star_arg, cst.Param):
      ordered.append((params.star_arg, ParameterKind.VAR_POSITIONAL))
    ordered += [(p, ParameterKind.KEYWORD_ONLY) for p in params.kwonly_params]
    if params.star_kwarg is not None:
      ordered.append((params.star_kwarg, ParameterKind.VAR_KEYWORD))

    scope = self._scopes.get(node.body)
    return [self._parameter(param, kind, scope) for param, kind in ordered]

  def _parameter(self, param: cst.Param, kind: ParameterKind, scope: Optional[Scope]) -> FormalParameter:
    return FormalParameter(
      name=param.name.value,
      default=param.default,
      kind=kind,
      closure_shared=_captured(param.name.value, scope),
      source_annotation=param.annotation.annotation if param.annotation is not None else None,
      position=self._position(param),
    )

  def _position(self, node: cst.CSTNode) -> Optional[CodeRange]:
    return self._positions.get(node)


def _is_none(annotation: Optional[cst.BaseExpression]) -> bool:
  return isinstance(annotation, cst.Name) and annotation.value == "None"


def _captured(name: str, scope: Optional[Scope]) -> bool:
  """True when a nested function, lambda or comprehension reads the parameter."""
  if not isinstance(scope, FunctionScope) or name not in scope.assignments:
    return False
  return any(access.scope is not scope for assignment in scope.assignments[name] for access in assignment.references)



def _bound_names(scopes: Mapping[cst.CSTNode, Optional[Scope]]) -> Set[str]:
  """Every name the script binds, in any of its scopes."""
  names: Set[str] = set()
  seen: Set[int] = set()
  for scope in scopes.values():
    if scope is None or id(scope) in seen:
      continue
    seen.add(id(scope))
    # ``import a.b`` binds ``a``
    names.update(assignment.name.split(".")[0] for assignment in scope.assignments)
  return names
