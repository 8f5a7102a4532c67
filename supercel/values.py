"""
The closed set of run-time values, and their JSON wire encoding.

Every value wears a lower-case tag. On the wire, a value is an object with
exactly two fields, "type" (the tag) and "value" (the payload), where the
payloads of lists and maps are themselves made of wire values.

Python's own == on these objects is structural and same-variant; that is
what round-trips and tests want. The expression language's == is `equal`,
which is stricter: it refuses to compare different variants at all.
"""
import json
import math
from typing import Any, Mapping, Sequence
from .errors import DecodeError, TypeMismatch, Overflow

INT_MIN, INT_MAX = -(1 << 63), (1 << 63) - 1
UINT_MAX = (1 << 64) - 1

class Value:
	tag: str
	__slots__ = ("payload",)

	def __init__(self, payload): self.payload = payload
	def __eq__(self, other): return type(self) is type(other) and self.payload == other.payload
	def __ne__(self, other): return not self == other
	def __hash__(self): return hash((self.tag, self.payload))
	def __repr__(self): return "%s(%r)" % (type(self).__name__, self.payload)

class Null(Value):
	tag = "null"
	__slots__ = ()
	def __init__(self, payload=None):
		assert payload is None
		super().__init__(None)
	def __repr__(self): return "Null()"

class Bool(Value):
	tag = "bool"
	__slots__ = ()

class Int(Value):
	tag = "int"
	__slots__ = ()

class Uint(Value):
	tag = "uint"
	__slots__ = ()

class Double(Value):
	tag = "double"
	__slots__ = ()

class String(Value):
	tag = "string"
	__slots__ = ()

class Bytes(Value):
	tag = "bytes"
	__slots__ = ()

class Timestamp(Value):
	""" Seconds since the epoch. """
	tag = "timestamp"
	__slots__ = ()

class List(Value):
	tag = "list"
	__slots__ = ()
	def __init__(self, items:Sequence[Value]): super().__init__(tuple(items))

class Map(Value):
	""" Keys are text. Insertion order carries no meaning. """
	tag = "map"
	__slots__ = ()
	__hash__ = None
	def __init__(self, entries:Mapping[str, Value]): super().__init__(dict(entries))

NULL = Null()
TRUE, FALSE = Bool(True), Bool(False)

def flag(it:bool) -> Bool: return TRUE if it else FALSE

ORDERED = (Int, Uint, Double, String, Timestamp)

###############################################################################
#
#  Range discipline: results must stay representable, or it's an error.
#

def checked_int(n:int) -> Int:
	if INT_MIN <= n <= INT_MAX: return Int(n)
	raise Overflow("Integer result %d is out of the signed 64-bit range" % n)

def checked_uint(n:int) -> Uint:
	if 0 <= n <= UINT_MAX: return Uint(n)
	raise Overflow("Integer result %d is out of the unsigned 64-bit range" % n)

def checked_double(x:float) -> Double:
	if math.isfinite(x): return Double(x)
	raise Overflow("Floating-point result is not finite")

###############################################################################
#
#  The language's notions of equality and order.
#

def equal(a:Value, b:Value) -> bool:
	""" Strict equality: same variant or TypeMismatch. Null compares with anything. """
	if isinstance(a, Null) or isinstance(b, Null):
		return type(a) is type(b)
	if type(a) is not type(b):
		raise TypeMismatch(a.tag, b.tag, "operands of '=='")
	if isinstance(a, List):
		return len(a.payload) == len(b.payload) and all(equal(x, y) for x, y in zip(a.payload, b.payload))
	if isinstance(a, Map):
		if a.payload.keys() != b.payload.keys(): return False
		return all(equal(v, b.payload[k]) for k, v in a.payload.items())
	return a.payload == b.payload

def compare(a:Value, b:Value) -> int:
	""" Strict ordering for the few variants that have one. Returns -1, 0 or 1. """
	if not isinstance(a, ORDERED):
		raise TypeMismatch("int, uint, double, string or timestamp", a.tag, "ordering")
	if type(a) is not type(b):
		raise TypeMismatch(a.tag, b.tag, "operands of ordering")
	if a.payload < b.payload: return -1
	if a.payload == b.payload: return 0
	return 1

###############################################################################
#
#  Wire encoding.
#

def encode(value:Value) -> dict:
	return {"type": value.tag, "value": _ENCODE[type(value)](value.payload)}

def _identity(payload): return payload

_ENCODE = {
	Null: _identity,
	Bool: _identity,
	Int: _identity,
	Uint: _identity,
	Double: float,
	String: _identity,
	Bytes: list,
	Timestamp: _identity,
	List: lambda items: [encode(item) for item in items],
	Map: lambda entries: {key: encode(item) for key, item in entries.items()},
}

def decode(wire:Any) -> Value:
	if not isinstance(wire, dict):
		raise DecodeError("A wire value must be an object with 'type' and 'value', not %s" % _kind(wire))
	if "type" not in wire:
		raise DecodeError("A wire value needs a 'type' field")
	extra = set(wire) - {"type", "value"}
	if extra:
		raise DecodeError("Unexpected field(s) in wire value: %s" % ", ".join(sorted(extra)))
	tag = wire["type"]
	if not isinstance(tag, str) or tag not in _DECODE:
		raise DecodeError("Unknown wire type %r" % (tag,))
	if "value" not in wire and tag != "null":
		raise DecodeError("A wire value of type %r needs a 'value' field" % tag)
	return _DECODE[tag](wire.get("value"))

def _kind(payload) -> str:
	if payload is None: return "null"
	if isinstance(payload, bool): return "a boolean"
	if isinstance(payload, (int, float)): return "a number"
	if isinstance(payload, str): return "a string"
	if isinstance(payload, list): return "an array"
	if isinstance(payload, dict): return "an object"
	return type(payload).__name__

def _mismatch(tag, payload):
	return DecodeError("Payload for %r cannot be %s" % (tag, _kind(payload)))

def _is_integer(payload): return isinstance(payload, int) and not isinstance(payload, bool)

def _decode_null(payload):
	if payload is not None: raise _mismatch("null", payload)
	return NULL

def _decode_bool(payload):
	if not isinstance(payload, bool): raise _mismatch("bool", payload)
	return flag(payload)

def _decode_int(payload):
	if not _is_integer(payload): raise _mismatch("int", payload)
	if not INT_MIN <= payload <= INT_MAX: raise DecodeError("Int payload %d is out of range" % payload)
	return Int(payload)

def _decode_uint(payload):
	if not _is_integer(payload): raise _mismatch("uint", payload)
	if not 0 <= payload <= UINT_MAX: raise DecodeError("Uint payload %d is out of range" % payload)
	return Uint(payload)

def _decode_double(payload):
	if not isinstance(payload, (int, float)) or isinstance(payload, bool): raise _mismatch("double", payload)
	if not math.isfinite(payload): raise DecodeError("Double payload must be finite")
	return Double(float(payload))

def _decode_string(payload):
	if not isinstance(payload, str): raise _mismatch("string", payload)
	return String(payload)

def _decode_bytes(payload):
	if not isinstance(payload, list): raise _mismatch("bytes", payload)
	if not all(_is_integer(b) and 0 <= b <= 255 for b in payload):
		raise DecodeError("Bytes payload must hold integers from 0 to 255")
	return Bytes(bytes(payload))

def _decode_timestamp(payload):
	if not _is_integer(payload): raise _mismatch("timestamp", payload)
	if not INT_MIN <= payload <= INT_MAX: raise DecodeError("Timestamp payload %d is out of range" % payload)
	return Timestamp(payload)

def _decode_list(payload):
	if not isinstance(payload, list): raise _mismatch("list", payload)
	items = []
	for i, item in enumerate(payload):
		try: items.append(decode(item))
		except DecodeError as ex: raise DecodeError("In list item %d: %s" % (i, ex.message)) from None
	return List(items)

def _decode_map(payload):
	if not isinstance(payload, dict): raise _mismatch("map", payload)
	entries = {}
	for key, item in payload.items():
		try: entries[key] = decode(item)
		except DecodeError as ex: raise DecodeError("In map entry %r: %s" % (key, ex.message)) from None
	return Map(entries)

_DECODE = {
	"null": _decode_null,
	"bool": _decode_bool,
	"int": _decode_int,
	"uint": _decode_uint,
	"double": _decode_double,
	"float": _decode_double,  # What older hosts send.
	"string": _decode_string,
	"bytes": _decode_bytes,
	"timestamp": _decode_timestamp,
	"list": _decode_list,
	"map": _decode_map,
}

def is_wire(it) -> bool:
	""" Does this look like a wire value, as opposed to some other JSON object? """
	return isinstance(it, dict) and isinstance(it.get("type"), str) and it["type"] in _DECODE

def dumps(value:Value) -> str:
	return json.dumps(encode(value))

def loads(text) -> Value:
	try: document = json.loads(text)
	except (TypeError, ValueError) as ex:
		raise DecodeError("Not valid JSON: %s" % ex) from None
	return decode(document)
