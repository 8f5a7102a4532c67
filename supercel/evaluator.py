"""
A resumable tree-walking evaluator.

Every visit method either returns a Value straight away or is a generator.
The generators exist for one reason: at a call to `platform.<name>(...)`
or `device.<name>(...)` the walk yields a HostRequest up through all the
enclosing frames and waits to be sent the answer. That makes the whole
walk a single generator which the drivers in `executive` can suspend,
resume, fail or cancel.

Evaluation order is left to right and depth first: receiver before
arguments, arguments in order, the left operand before the right.
"""
import math
from types import GeneratorType
from typing import Generator, NamedTuple, Optional, Tuple
from boozetools.support.foundation import Visitor
from . import syntax, library
from .diagnostics import Report
from .environment import Environment, PLATFORM
from .errors import CelError, EvaluationError, ArityError, TypeMismatch, DivisionByZero, UndefinedReference, StepLimitExceeded
from .ontology import Span
from .values import (
	Value, Bool, Int, Uint, Double, String, Bytes, List, Map,
	checked_int, checked_uint, checked_double, equal, compare, flag,
)

class HostRequest(NamedTuple):
	""" What the walk wants from the host before it can carry on. """
	name: str
	args: Tuple[Value, ...]
	span: Span
	channel: str = PLATFORM

	@property
	def path(self) -> str: return "%s.%s" % (self.channel, self.name)

WALK = Generator[HostRequest, Value, Value]

class TreeWalker(Visitor):
	def __init__(self, environment:Environment, *, max_steps:Optional[int]=None, report:Report=None):
		assert isinstance(environment, Environment), environment
		self.environment = environment
		self.max_steps = max_steps
		self.steps = 0
		self.depth = 0
		self.report = report or Report(verbose=0)

	def _tick(self):
		self.steps += 1
		if self.max_steps is not None and self.steps > self.max_steps:
			raise StepLimitExceeded(self.max_steps)

	def walk(self, expr:syntax.Expression) -> WALK:
		self._tick()
		if self.depth >= syntax.MAX_NESTING:
			raise StepLimitExceeded(syntax.MAX_NESTING, "levels of nesting")
		self.depth += 1
		try:
			outcome = self.visit(expr)
			if isinstance(outcome, GeneratorType):
				outcome = yield from outcome
		except CelError as ex:
			if ex.site is None: ex.site = expr.span
			raise
		finally:
			self.depth -= 1
		assert isinstance(outcome, Value), (expr, outcome)
		return outcome

	def visit_Literal(self, expr:syntax.Literal): return expr.value

	def visit_Identifier(self, expr:syntax.Identifier):
		return self.environment.resolve([expr.name])

	def visit_Grouping(self, expr:syntax.Grouping):
		return (yield from self.walk(expr.inner))

	def visit_MemberAccess(self, expr:syntax.MemberAccess):
		if syntax.host_channel(expr):
			raise TypeMismatch("a call", "a bare reference", syntax.dotted_path(expr))
		target = yield from self.walk(expr.target)
		if not isinstance(target, Map):
			raise TypeMismatch("map", target.tag, "member '.%s'" % expr.name)
		try: return target.payload[expr.name]
		except KeyError: raise UndefinedReference(syntax.dotted_path(expr) or expr.name) from None

	def visit_Index(self, expr:syntax.Index):
		if syntax.is_host_root(expr.target):
			raise TypeMismatch("a call", "a bare reference", "%s[...]" % expr.target.name)
		target = yield from self.walk(expr.target)
		index = yield from self.walk(expr.index)
		if isinstance(target, List):
			if not isinstance(index, (Int, Uint)):
				raise TypeMismatch("int or uint", index.tag, "list index")
			if 0 <= index.payload < len(target.payload):
				return target.payload[index.payload]
			raise UndefinedReference("[%d]" % index.payload, "List index %d is out of range" % index.payload)
		if isinstance(target, Map):
			if not isinstance(index, String):
				raise TypeMismatch("string", index.tag, "map key")
			try: return target.payload[index.payload]
			except KeyError: raise UndefinedReference("[%r]" % index.payload, "No such key %r" % index.payload) from None
		raise TypeMismatch("list or map", target.tag, "indexing")

	def visit_Call(self, expr:syntax.Call):
		callee = expr.callee
		channel = syntax.host_channel(callee)
		if channel:
			args = yield from self._walk_all(expr.args)
			request = HostRequest(callee.name, args, expr.span, channel)
			self.report.info("Host request:", request.path, args)
			answer = yield request
			self.report.info("Host answer:", request.path, answer)
			return answer
		if isinstance(callee, syntax.Identifier):
			if callee.name == library.MAYBE:
				return (yield from self._maybe(expr))
			builtin = library.function(callee.name)
			builtin.check_arity(len(expr.args))
			args = yield from self._walk_all(expr.args)
			return builtin(*args)
		if isinstance(callee, syntax.MemberAccess):
			receiver = yield from self.walk(callee.target)
			args = yield from self._walk_all(expr.args)
			return library.call_method(callee.name, receiver, args)
		raise TypeMismatch("a function or method name", type(callee).__name__, "call")

	def _walk_all(self, exprs) -> WALK:
		values = []
		for x in exprs: values.append((yield from self.walk(x)))
		return tuple(values)

	def _maybe(self, expr:syntax.Call):
		""" The first argument's value, or the second's if the first fails in a forgivable way. """
		if len(expr.args) != 2:
			raise ArityError(library.MAYBE, 2, len(expr.args))
		first, fallback = expr.args
		try:
			return (yield from self.walk(first))
		except EvaluationError as ex:
			if not ex.recoverable: raise
			self.report.info("maybe: falling back after", ex.kind, ex.message)
		return (yield from self.walk(fallback))

	def visit_Unary(self, expr:syntax.Unary):
		operand = yield from self.walk(expr.operand)
		if expr.op == "!":
			return flag(not _boolean(operand, "operand of '!'"))
		assert expr.op == "-", expr.op
		if isinstance(operand, Int): return checked_int(-operand.payload)
		if isinstance(operand, Double): return Double(-operand.payload)
		raise TypeMismatch("int or double", operand.tag, "operand of unary '-'")

	def visit_Binary(self, expr:syntax.Binary):
		lhs = yield from self.walk(expr.first)
		for i, (op, operand) in enumerate(expr.rest):
			if i: self._tick()
			rhs = yield from self.walk(operand)
			try: lhs = BINARY[op](lhs, rhs)
			except CelError as ex:
				ex.site = expr.first.left(), operand.right()
				raise
		return lhs

	def visit_Logical(self, expr:syntax.Logical):
		context = "operand of '%s'" % expr.op
		decisive = expr.op == "||"
		for i, operand in enumerate(expr.operands):
			if i > 1: self._tick()
			if _boolean((yield from self.walk(operand)), context) == decisive:
				return flag(decisive)
		return flag(not decisive)

	def visit_Conditional(self, expr:syntax.Conditional):
		test = _boolean((yield from self.walk(expr.test)), "condition of '?:'")
		return (yield from self.walk(expr.if_true if test else expr.if_false))

	def visit_ListExpr(self, expr:syntax.ListExpr):
		return List((yield from self._walk_all(expr.items)))

	def visit_MapExpr(self, expr:syntax.MapExpr):
		entries = {}
		for key_expr, value_expr in expr.entries:
			key = yield from self.walk(key_expr)
			if not isinstance(key, String):
				raise TypeMismatch("string", key.tag, "map key")
			entries[key.payload] = yield from self.walk(value_expr)
		return Map(entries)

def _boolean(value:Value, context:str) -> bool:
	if not isinstance(value, Bool): raise TypeMismatch("bool", value.tag, context)
	return value.payload

###############################################################################
#
#  Binary operators. Operands are already evaluated and must agree in variant.
#

def _same_variant(op:str, a:Value, b:Value):
	if type(a) is not type(b):
		raise TypeMismatch(a.tag, b.tag, "operands of '%s'" % op)

def _numeric(op:str, a:Value):
	if not isinstance(a, (Int, Uint, Double)):
		raise TypeMismatch("int, uint or double", a.tag, "operands of '%s'" % op)

def _integral(a:Value, x:int) -> Value:
	return checked_int(x) if isinstance(a, Int) else checked_uint(x)

def _truncated_quotient(x:int, y:int) -> int:
	q = abs(x) // abs(y)
	return -q if (x < 0) != (y < 0) else q

def add(a:Value, b:Value) -> Value:
	_same_variant("+", a, b)
	if isinstance(a, (String, Bytes, List)): return type(a)(a.payload + b.payload)
	_numeric("+", a)
	if isinstance(a, Double): return checked_double(a.payload + b.payload)
	return _integral(a, a.payload + b.payload)

def sub(a:Value, b:Value) -> Value:
	_same_variant("-", a, b)
	_numeric("-", a)
	if isinstance(a, Double): return checked_double(a.payload - b.payload)
	return _integral(a, a.payload - b.payload)

def mul(a:Value, b:Value) -> Value:
	_same_variant("*", a, b)
	_numeric("*", a)
	if isinstance(a, Double): return checked_double(a.payload * b.payload)
	return _integral(a, a.payload * b.payload)

def div(a:Value, b:Value) -> Value:
	_same_variant("/", a, b)
	_numeric("/", a)
	if b.payload == 0: raise DivisionByZero("/")
	if isinstance(a, Double): return checked_double(a.payload / b.payload)
	return _integral(a, _truncated_quotient(a.payload, b.payload))

def mod(a:Value, b:Value) -> Value:
	_same_variant("%", a, b)
	_numeric("%", a)
	if b.payload == 0: raise DivisionByZero("%")
	if isinstance(a, Double): return checked_double(math.fmod(a.payload, b.payload))
	return _integral(a, a.payload - b.payload * _truncated_quotient(a.payload, b.payload))

def contained_in(item:Value, container:Value) -> Bool:
	if isinstance(container, List):
		return flag(any(equal(item, x) for x in container.payload))
	if isinstance(container, Map):
		if not isinstance(item, String): raise TypeMismatch("string", item.tag, "key for 'in'")
		return flag(item.payload in container.payload)
	raise TypeMismatch("list or map", container.tag, "right operand of 'in'")

BINARY = {
	"==": lambda a, b: flag(equal(a, b)),
	"!=": lambda a, b: flag(not equal(a, b)),
	"<": lambda a, b: flag(compare(a, b) < 0),
	"<=": lambda a, b: flag(compare(a, b) <= 0),
	">": lambda a, b: flag(compare(a, b) > 0),
	">=": lambda a, b: flag(compare(a, b) >= 0),
	"in": contained_in,
	"+": add,
	"-": sub,
	"*": mul,
	"/": div,
	"%": mod,
}
