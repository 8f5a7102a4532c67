"""
The built-in functions and methods.

Functions are called by bare name: size(x), int(x) and so on.
Methods are called on a receiver: x.size(), s.startsWith(t).
Either way the arguments arrive already evaluated, with one exception:
`maybe` must see its arguments unevaluated, so the evaluator handles it
itself and only its name lives here.
"""
import math
import re
from typing import Callable, NamedTuple, Sequence
from .errors import ArityError, TypeMismatch, Overflow, UndefinedReference
from .values import (
	Value, Null, Bool, Int, Uint, Double, String, Bytes, Timestamp, List, Map,
	checked_int, checked_uint, checked_double, equal, flag,
)

MAYBE = "maybe"

class Builtin(NamedTuple):
	name: str
	arity: int
	fn: Callable[..., Value]

	def check_arity(self, given:int):
		if given != self.arity: raise ArityError(self.name, self.arity, given)

	def __call__(self, *args:Value) -> Value:
		self.check_arity(len(args))
		return self.fn(*args)

FUNCTIONS = {}
METHODS = {}

def _function(name:str, arity:int=1):
	def register(fn):
		FUNCTIONS[name] = Builtin(name, arity, fn)
		return fn
	return register

def _method(name:str, arity:int):
	""" Arity here counts the arguments, not the receiver. """
	def register(fn):
		METHODS[name] = Builtin(name, arity + 1, fn)
		return fn
	return register

def function(name:str) -> Builtin:
	try: return FUNCTIONS[name]
	except KeyError: raise UndefinedReference(name, "Unknown function '%s'" % name) from None

def method(name:str) -> Builtin:
	try: return METHODS[name]
	except KeyError: raise UndefinedReference(name, "Unknown method '%s'" % name) from None

def call_method(name:str, receiver:Value, args:Sequence[Value]) -> Value:
	builtin = method(name)
	if len(args) + 1 != builtin.arity: raise ArityError(name, builtin.arity - 1, len(args))
	return builtin.fn(receiver, *args)

###############################################################################

_SIZED = (String, Bytes, List, Map)

@_function("size")
@_method("size", 0)
def size(x:Value) -> Int:
	if not isinstance(x, _SIZED):
		raise TypeMismatch("string, bytes, list or map", x.tag, "size")
	return Int(len(x.payload))

@_method("contains", 1)
def contains(receiver:Value, item:Value) -> Bool:
	if isinstance(receiver, String):
		return flag(_text(item, "contains").payload in receiver.payload)
	if isinstance(receiver, List):
		return flag(any(equal(x, item) for x in receiver.payload))
	if isinstance(receiver, Map):
		return flag(_text(item, "contains").payload in receiver.payload)
	raise TypeMismatch("string, list or map", receiver.tag, "contains")

@_method("startsWith", 1)
def starts_with(receiver:Value, prefix:Value) -> Bool:
	return flag(_text(receiver, "startsWith").payload.startswith(_text(prefix, "startsWith").payload))

@_method("endsWith", 1)
def ends_with(receiver:Value, suffix:Value) -> Bool:
	return flag(_text(receiver, "endsWith").payload.endswith(_text(suffix, "endsWith").payload))

def _text(x:Value, context:str) -> String:
	if not isinstance(x, String): raise TypeMismatch("string", x.tag, context)
	return x

###############################################################################
#
#  Conversions. Out-of-range results are Overflow; text that does not
#  spell a number is a TypeMismatch.
#

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_DOUBLE_TEXT = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

def _parse_integer(text:str, context:str) -> int:
	if not _INTEGER_TEXT.fullmatch(text):
		raise TypeMismatch("integer text", repr(text), context)
	return int(text)

@_function("int")
def to_int(x:Value) -> Int:
	if isinstance(x, Int): return x
	if isinstance(x, (Uint, Timestamp)): return checked_int(x.payload)
	if isinstance(x, Double):
		if not math.isfinite(x.payload): raise Overflow("Cannot convert a non-finite double to int")
		return checked_int(math.trunc(x.payload))
	if isinstance(x, String): return checked_int(_parse_integer(x.payload, "int"))
	raise TypeMismatch("uint, double, string or timestamp", x.tag, "int")

@_function("uint")
def to_uint(x:Value) -> Uint:
	if isinstance(x, Uint): return x
	if isinstance(x, Int): return checked_uint(x.payload)
	if isinstance(x, Double):
		if not math.isfinite(x.payload): raise Overflow("Cannot convert a non-finite double to uint")
		return checked_uint(math.trunc(x.payload))
	if isinstance(x, String): return checked_uint(_parse_integer(x.payload, "uint"))
	raise TypeMismatch("int, double or string", x.tag, "uint")

@_function("double")
def to_double(x:Value) -> Double:
	if isinstance(x, Double): return x
	if isinstance(x, (Int, Uint)): return checked_double(float(x.payload))
	if isinstance(x, String):
		if not _DOUBLE_TEXT.fullmatch(x.payload):
			raise TypeMismatch("numeric text", repr(x.payload), "double")
		return checked_double(float(x.payload))
	raise TypeMismatch("int, uint or string", x.tag, "double")

@_function("string")
def to_string(x:Value) -> String:
	if isinstance(x, String): return x
	if isinstance(x, Null): return String("null")
	if isinstance(x, Bool): return String("true" if x.payload else "false")
	if isinstance(x, (Int, Uint, Timestamp)): return String(str(x.payload))
	if isinstance(x, Double): return String(repr(x.payload))
	if isinstance(x, Bytes):
		try: return String(x.payload.decode("utf-8"))
		except UnicodeDecodeError: raise TypeMismatch("UTF-8 bytes", "undecodable bytes", "string") from None
	raise TypeMismatch("a scalar", x.tag, "string")
