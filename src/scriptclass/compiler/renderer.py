"""
Source Renderer.

Turns the class model back into a LibCST module. Two canonicalizations make
script code valid inside a class:

1. **Implicit returns**: the trailing expression statement of a method that
   returns a value becomes a ``return`` statement (also at the end of
   ``if``/``elif``/``else`` branches).
2. **Implicit member access**: a free name inside a method that matches a
   field or method of the enclosing class is qualified with the receiver
   (``self.name``), or with the class name inside static methods. Names bound
   locally, at module level or as builtins are left alone.
"""

import abc
from typing import Dict, List, Optional, Sequence, Set, Tuple

import libcst as cst
from libcst.metadata import MetadataWrapper, ScopeProvider

from scriptclass.core.nodes import ClassDefinition, FieldDefinition, MethodDefinition, ModuleDefinition
from scriptclass.enums import ParameterKind
from scriptclass.runtime import raises

DEFAULT_RECEIVER = "self"

_Body = List[cst.BaseStatement]


def _decorator(source: str) -> cst.Decorator:
  return cst.Decorator(decorator=cst.parse_expression(source))


def _docstring(text: str) -> cst.SimpleStatementLine:
  return cst.SimpleStatementLine(body=[cst.Expr(value=cst.SimpleString(repr(text)))])


def _pass_body() -> _Body:
  return [cst.SimpleStatementLine(body=[cst.Pass()])]


def returns_value(method: MethodDefinition) -> bool:
  """
  Whether the method produces a value, i.e. is neither a constructor nor void.
  """
  if method.is_constructor:
    return False
  if method.return_type is not None:
    return not method.return_type.is_none
  returns = method.source_returns
  return not (isinstance(returns, cst.Name) and returns.value == "None")


def with_implicit_return(body: _Body) -> _Body:
  """
  Converts a trailing expression statement into a ``return``.

  Args:
      body: Statements of a method.

  Returns:
      _Body: A new list; ``body`` itself is not modified.
  """
  if not body:
    return list(body)
  *head, last = body
  if isinstance(last, cst.SimpleStatementLine):
    last = last.with_changes(body=_return_last_small(last.body))
  elif isinstance(last, cst.If):
    last = _if_with_return(last)
  return [*head, last]


def _return_last_small(smalls: Sequence[cst.BaseSmallStatement]) -> List[cst.BaseSmallStatement]:
  *head, last = smalls
  if isinstance(last, cst.Expr) and not isinstance(last.value, cst.Yield):
    last = cst.Return(value=last.value, semicolon=last.semicolon)
  return [*head, last]


def _suite_with_return(suite: cst.BaseSuite) -> cst.BaseSuite:
  if isinstance(suite, cst.IndentedBlock):
    return suite.with_changes(body=with_implicit_return(list(suite.body)))
  return suite.with_changes(body=_return_last_small(suite.body))


def _if_with_return(node: cst.If) -> cst.If:
  orelse = node.orelse
  if isinstance(orelse, cst.If):
    orelse = _if_with_return(orelse)
  elif isinstance(orelse, cst.Else):
    orelse = orelse.with_changes(body=_suite_with_return(orelse.body))
  return node.with_changes(body=_suite_with_return(node.body), orelse=orelse)


def _verbatim_names(statements: Sequence[cst.BaseStatement]) -> List[str]:
  names = []
  for statement in statements:
    if isinstance(statement, (cst.FunctionDef, cst.ClassDef)):
      names.append(statement.name.value)
    elif isinstance(statement, cst.SimpleStatementLine):
      for small in statement.body:
        if isinstance(small, cst.AnnAssign) and isinstance(small.target, cst.Name):
          names.append(small.target.value)
        elif isinstance(small, cst.Assign):
          names.extend(t.target.value for t in small.targets if isinstance(t.target, cst.Name))
  return names


def unresolved_names(wrapper: MetadataWrapper) -> List[cst.Name]:
  """
  Collects the name loads that no scope binds.

  Args:
      wrapper: Metadata wrapper of a rendered module.

  Returns:
      List[cst.Name]: Nodes of ``wrapper.module``, in no particular order.
  """
  scopes = wrapper.resolve(ScopeProvider)
  found: Dict[int, cst.Name] = {}
  for scope in set(s for s in scopes.values() if s is not None):
    for access in scope.accesses:
      if not access.referents and isinstance(access.node, cst.Name):
        found[id(access.node)] = access.node
  return list(found.values())


class ImplicitMemberAccess(cst.CSTTransformer):
  """
  Qualifies unresolved names that refer to members of the enclosing class.
  """

  def __init__(self, members: Dict[str, Set[str]], unresolved: Set[int]) -> None:
    """
    Args:
        members: Member names per class name.
        unresolved: ``id()`` of every unresolved ``Name`` node.
    """
    super().__init__()
    self._members = members
    self._unresolved = unresolved
    self._classes: List[str] = []
    # One entry per open function: (class name, receiver) for methods, None for nested functions.
    self._functions: List[Optional[Tuple[str, Optional[str]]]] = []

  def visit_ClassDef(self, node: cst.ClassDef) -> None:
    self._classes.append(node.name.value)

  def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
    self._classes.pop()
    return updated_node

  def visit_FunctionDef(self, node: cst.FunctionDef) -> None:
    if self._classes and not self._functions:
      self._functions.append((self._classes[-1], _receiver(node)))
    else:
      self._functions.append(self._functions[-1] if self._functions else None)

  def leave_FunctionDef(self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef) -> cst.FunctionDef:
    self._functions.pop()
    return updated_node

  def leave_Name(self, original_node: cst.Name, updated_node: cst.Name) -> cst.BaseExpression:
    if id(original_node) not in self._unresolved or not self._functions or self._functions[-1] is None:
      return updated_node
    class_name, receiver = self._functions[-1]
    if original_node.value not in self._members.get(class_name, ()):
      return updated_node
    return cst.Attribute(value=cst.Name(receiver or class_name), attr=cst.Name(original_node.value))


def _receiver(node: cst.FunctionDef) -> Optional[str]:
  if any(isinstance(d.decorator, cst.Name) and d.decorator.value == "staticmethod" for d in node.decorators):
    return None
  params = node.params
  first = (list(params.posonly_params) + list(params.params))[:1]
  return first[0].name.value if first else None


class SourceRenderer:
  """
  Renders a ``ModuleDefinition`` into Python source.

  Names of referenced types and helpers are allocated in the module's
  ``TypeTable`` while rendering, so import statements are emitted last.
  """

  def __init__(self, module: ModuleDefinition) -> None:
    self.module = module
    self.types = module.types

  def render(self) -> cst.Module:
    """
    Builds the module, with implicit member access resolved.

    Returns:
        cst.Module: The generated unit.
    """
    classes = [self._class(c) for c in self.module.classes]
    header: _Body = [*self.module.imports, *self.types.import_statements()]
    wrapper = MetadataWrapper(cst.Module(body=[*header, *classes]))

    members = {c.name: set(c.member_names) | set(_verbatim_names(c.statements)) for c in self.module.classes}
    unresolved = {id(n) for n in unresolved_names(wrapper)}
    return wrapper.module.visit(ImplicitMemberAccess(members, unresolved))

  def code(self) -> str:
    return self.render().code

  def _class(self, class_def: ClassDefinition) -> cst.ClassDef:
    body: _Body = []
    if class_def.docstring is not None:
      body.append(_docstring(class_def.docstring))
    body.extend(self._field(f) for f in class_def.fields)
    body.extend(statement.deep_clone() for statement in class_def.statements)
    body.extend(self._method(m) for m in class_def.constructors)
    body.extend(self._method(m) for m in class_def.methods)

    bases = self._bases(class_def)
    return cst.ClassDef(
      name=cst.Name(class_def.name),
      body=cst.IndentedBlock(body=body or _pass_body()),
      bases=[b for b in bases if b.keyword is None and b.star != "**"],
      keywords=[b for b in bases if b.keyword is not None or b.star == "**"],
      decorators=class_def.decorators,
      leading_lines=[cst.EmptyLine(), cst.EmptyLine()],
    )

  def _bases(self, class_def: ClassDefinition) -> List[cst.Arg]:
    if class_def.source_bases:
      return list(class_def.source_bases)
    refs = [] if class_def.superclass.is_top else [class_def.superclass]
    refs += [i for i in class_def.interfaces if i not in refs]
    return [cst.Arg(value=cst.parse_expression(self.types.annotation(ref))) for ref in refs]

  def _field(self, field_def: FieldDefinition) -> cst.SimpleStatementLine:
    if field_def.is_static:
      annotation = f"{self.types.typing_form('ClassVar')}[{self.types.annotation(field_def.type)}]"
    elif field_def.is_final:
      annotation = self.types.final(field_def.type)
    else:
      annotation = self.types.annotation(field_def.type)

    declaration = cst.AnnAssign(
      target=cst.Name(field_def.name),
      annotation=cst.Annotation(annotation=cst.parse_expression(annotation)),
      value=field_def.initializer if field_def.is_static else None,
    )
    return cst.SimpleStatementLine(body=[declaration])

  def _method(self, method: MethodDefinition) -> cst.FunctionDef:
    # Bodies may be shared between methods; each rendered method gets its own nodes.
    body = [statement.deep_clone() for statement in method.body]
    if returns_value(method):
      body = with_implicit_return(body)
    if method.docstring is not None:
      body.insert(0, _docstring(method.docstring))

    returns = None
    if method.return_type is not None:
      returns = cst.Annotation(annotation=cst.parse_expression(self.types.annotation(method.return_type)))
    elif method.source_returns is not None:
      returns = cst.Annotation(annotation=method.source_returns)

    return cst.FunctionDef(
      name=cst.Name(method.name),
      params=self._parameters(method),
      body=cst.IndentedBlock(body=body or _pass_body()),
      decorators=self._decorators(method),
      returns=returns,
      asynchronous=cst.Asynchronous() if method.metadata.get("asynchronous") else None,
      leading_lines=[cst.EmptyLine()],
    )

  def _decorators(self, method: MethodDefinition) -> List[cst.Decorator]:
    decorators = []
    if method.is_static:
      decorators.append(_decorator("staticmethod"))
    if method.is_abstract:
      decorators.append(_decorator(self.types.name_of(abc.abstractmethod)))
    if method.exceptions:
      names = ", ".join(self.types.name_of(e.base) for e in method.exceptions)
      decorators.append(_decorator(f"{self.types.name_of(raises)}({names})"))
    return decorators + list(method.decorators)

  def _parameters(self, method: MethodDefinition) -> cst.Parameters:
    positional_only: List[cst.Param] = []
    regular: List[cst.Param] = []
    keyword_only: List[cst.Param] = []
    star_arg = cst.MaybeSentinel.DEFAULT
    star_kwarg = None

    for param in method.parameters:
      annotation = None
      if param.type is not None:
        annotation = cst.Annotation(cst.parse_expression(self.types.annotated(param.type, param.annotations)))
      elif param.source_annotation is not None:
        annotation = cst.Annotation(param.source_annotation)

      node = cst.Param(name=cst.Name(param.name), annotation=annotation, default=param.default)
      if param.kind is ParameterKind.POSITIONAL_ONLY:
        positional_only.append(node)
      elif param.kind is ParameterKind.VAR_POSITIONAL:
        star_arg = node.with_changes(default=None)
      elif param.kind is ParameterKind.KEYWORD_ONLY:
        keyword_only.append(node)
      elif param.kind is ParameterKind.VAR_KEYWORD:
        star_kwarg = node.with_changes(default=None)
      else:
        regular.append(node)

    if not method.is_static:
      receiver = cst.Param(name=cst.Name(method.metadata.get("receiver", DEFAULT_RECEIVER)))
      if positional_only:
        positional_only.insert(0, receiver)
      else:
        regular.insert(0, receiver)
    if keyword_only and star_arg is cst.MaybeSentinel.DEFAULT:
      star_arg = cst.ParamStar()

    return cst.Parameters(
      params=regular,
      posonly_params=positional_only,
      kwonly_params=keyword_only,
      star_arg=star_arg,
      star_kwarg=star_kwarg,
    )
