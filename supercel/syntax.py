"""
The set of parse-nodes.

The front end builds these bottom-up. They are frozen once built, each owns
its children outright, and a tree may be evaluated any number of times
against different environments.

Spans record where a node came from, but do not take part in equality:
two parses of the same text are equal, and so is a tree rebuilt from JSON.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple
from .ontology import Phrase, Span, NOWHERE
from .values import Value
from .environment import HOST_CHANNELS

def _span(): return field(default=NOWHERE, compare=False, repr=False)

class Expression(Phrase):
	pass

@dataclass(frozen=True)
class Literal(Expression):
	value: Value
	span: Span = _span()

@dataclass(frozen=True)
class Identifier(Expression):
	name: str
	span: Span = _span()

@dataclass(frozen=True)
class MemberAccess(Expression):
	target: Expression
	name: str
	span: Span = _span()

@dataclass(frozen=True)
class Index(Expression):
	target: Expression
	index: Expression
	span: Span = _span()

@dataclass(frozen=True)
class Call(Expression):
	"""
	The callee is an ordinary expression. Whether it names a built-in,
	a method on some receiver, or a platform property is decided when
	evaluating, not when parsing.
	"""
	callee: Expression
	args: Tuple[Expression, ...]
	span: Span = _span()

@dataclass(frozen=True)
class Unary(Expression):
	op: str
	operand: Expression
	span: Span = _span()

@dataclass(frozen=True)
class Binary(Expression):
	"""
	A run of left-associative operators at one precedence level:
	`1 - 2 + 3` is first=1, rest=(("-", 2), ("+", 3)). Keeping the run
	flat means a long sum costs no more nesting than a short one.
	"""
	first: Expression
	rest: Tuple[Tuple[str, Expression], ...]
	span: Span = _span()

@dataclass(frozen=True)
class Logical(Expression):
	""" A run of the short-circuit operator && or || over two or more operands. """
	op: str
	operands: Tuple[Expression, ...]
	span: Span = _span()

@dataclass(frozen=True)
class Grouping(Expression):
	inner: Expression
	span: Span = _span()

@dataclass(frozen=True)
class Conditional(Expression):
	test: Expression
	if_true: Expression
	if_false: Expression
	span: Span = _span()

@dataclass(frozen=True)
class ListExpr(Expression):
	items: Tuple[Expression, ...]
	span: Span = _span()

@dataclass(frozen=True)
class MapExpr(Expression):
	entries: Tuple[Tuple[Expression, Expression], ...]
	span: Span = _span()

# Binding strength of each binary operator. A Binary run shares one level.
PRECEDENCE = {
	"==": 1, "!=": 1,
	"<": 2, "<=": 2, ">": 2, ">=": 2, "in": 2,
	"+": 3, "-": 3,
	"*": 4, "/": 4, "%": 4,
}

# Deeper trees than this are refused, both from text and from JSON.
MAX_NESTING = 100

def children(expr:Expression) -> Tuple[Expression, ...]:
	if isinstance(expr, (Literal, Identifier)): return ()
	if isinstance(expr, MemberAccess): return (expr.target,)
	if isinstance(expr, Index): return (expr.target, expr.index)
	if isinstance(expr, Call): return (expr.callee,) + expr.args
	if isinstance(expr, Unary): return (expr.operand,)
	if isinstance(expr, Binary): return (expr.first,) + tuple(x for _, x in expr.rest)
	if isinstance(expr, Logical): return expr.operands
	if isinstance(expr, Grouping): return (expr.inner,)
	if isinstance(expr, Conditional): return (expr.test, expr.if_true, expr.if_false)
	if isinstance(expr, ListExpr): return expr.items
	if isinstance(expr, MapExpr): return tuple(x for entry in expr.entries for x in entry)
	raise TypeError(expr)

def too_deep(expr:Expression, limit:int=MAX_NESTING) -> Optional[Expression]:
	""" The first node found deeper than the limit, or None. Iterative, so safe on any tree. """
	stack = [(expr, 1)]
	while stack:
		node, depth = stack.pop()
		if depth > limit: return node
		stack.extend((child, depth+1) for child in reversed(children(node)))
	return None

def dotted_path(expr:Expression) -> Optional[str]:
	""" For messages: "a.b.c" if the expression is a plain chain of names. """
	if isinstance(expr, Identifier): return expr.name
	if isinstance(expr, MemberAccess):
		prefix = dotted_path(expr.target)
		if prefix is not None: return prefix + "." + expr.name
	return None

def host_channel(expr:Expression) -> Optional[str]:
	""" For `platform.<name>` or `device.<name>`, the shape that routes a call to the host, give the channel. """
	if isinstance(expr, MemberAccess) and is_host_root(expr.target): return expr.target.name
	return None

def is_host_root(expr:Expression) -> bool:
	return isinstance(expr, Identifier) and expr.name in HOST_CHANNELS
