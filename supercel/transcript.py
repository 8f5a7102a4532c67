"""
Carry a syntax tree across the JSON boundary, for hosts that parse once
and evaluate many times elsewhere.

Every node becomes {"type": <node class name>, "value": <content>}.
Content is positional, in the order of the node's fields: a list when the
node has several fields, the bare field when it has one. Literals carry
their value in wire form, so the same decoder handles both.
Spans do not travel; a rebuilt tree is equal to the one that was sent.
"""
import json
from boozetools.support.foundation import Visitor
from . import syntax
from .errors import DecodeError
from .values import encode, decode

UNARY_OPS = frozenset(["!", "-"])
BINARY_OPS = frozenset(syntax.PRECEDENCE)
LOGICAL_OPS = frozenset(["&&", "||"])

class Transcriber(Visitor):
	def visit_Literal(self, it:syntax.Literal): return encode(it.value)
	def visit_Identifier(self, it:syntax.Identifier): return it.name
	def visit_MemberAccess(self, it:syntax.MemberAccess): return [self.node(it.target), it.name]
	def visit_Index(self, it:syntax.Index): return [self.node(it.target), self.node(it.index)]
	def visit_Call(self, it:syntax.Call): return [self.node(it.callee), [self.node(a) for a in it.args]]
	def visit_Unary(self, it:syntax.Unary): return [it.op, self.node(it.operand)]
	def visit_Binary(self, it:syntax.Binary):
		return [self.node(it.first), [[op, self.node(x)] for op, x in it.rest]]
	def visit_Logical(self, it:syntax.Logical): return [it.op, [self.node(x) for x in it.operands]]
	def visit_Grouping(self, it:syntax.Grouping): return self.node(it.inner)
	def visit_Conditional(self, it:syntax.Conditional):
		return [self.node(it.test), self.node(it.if_true), self.node(it.if_false)]
	def visit_ListExpr(self, it:syntax.ListExpr): return [self.node(x) for x in it.items]
	def visit_MapExpr(self, it:syntax.MapExpr):
		return [[self.node(k), self.node(v)] for k, v in it.entries]

	def node(self, it:syntax.Expression) -> dict:
		return {"type": type(it).__name__, "value": self.visit(it)}

_transcriber = Transcriber()

def to_json(tree:syntax.Expression) -> dict:
	return _transcriber.node(tree)

def dumps(tree:syntax.Expression) -> str:
	return json.dumps(to_json(tree))

###############################################################################

def from_json(document, depth:int=1) -> syntax.Expression:
	if depth > syntax.MAX_NESTING:
		raise DecodeError("The AST nests more than %d levels deep" % syntax.MAX_NESTING)
	if not isinstance(document, dict) or set(document) != {"type", "value"}:
		raise DecodeError("An AST node must be an object with exactly 'type' and 'value'")
	tag = document["type"]
	if tag not in _READERS:
		raise DecodeError("Unknown AST node type %r" % (tag,))
	return _READERS[tag](document["value"], depth+1)

def loads(text) -> syntax.Expression:
	try: document = json.loads(text)
	except (TypeError, ValueError, RecursionError) as ex:
		raise DecodeError("Not valid JSON: %s" % ex) from None
	return from_json(document)

def _fields(content, count:int, what:str) -> list:
	if not isinstance(content, list) or len(content) != count:
		raise DecodeError("%s content must be an array of %d items" % (what, count))
	return content

def _name(content, what:str) -> str:
	if not isinstance(content, str) or not content:
		raise DecodeError("%s needs a non-empty name" % what)
	return content

def _op(content, allowed, what:str) -> str:
	if content not in allowed:
		raise DecodeError("%r is not a %s operator" % (content, what))
	return content

def _many(content, depth:int, what:str, least:int=0) -> tuple:
	if not isinstance(content, list) or len(content) < least:
		raise DecodeError("%s content must be an array%s" % (what, " of at least %d items" % least if least else ""))
	return tuple(from_json(x, depth) for x in content)

def _read_literal(content, depth): return syntax.Literal(decode(content))
def _read_identifier(content, depth): return syntax.Identifier(_name(content, "Identifier"))

def _read_member(content, depth):
	target, name = _fields(content, 2, "MemberAccess")
	return syntax.MemberAccess(from_json(target, depth), _name(name, "MemberAccess"))

def _read_index(content, depth):
	target, index = _fields(content, 2, "Index")
	return syntax.Index(from_json(target, depth), from_json(index, depth))

def _read_call(content, depth):
	callee, args = _fields(content, 2, "Call")
	return syntax.Call(from_json(callee, depth), _many(args, depth, "Call arguments"))

def _read_unary(content, depth):
	op, operand = _fields(content, 2, "Unary")
	return syntax.Unary(_op(op, UNARY_OPS, "unary"), from_json(operand, depth))

def _read_binary(content, depth):
	first, rest = _fields(content, 2, "Binary")
	if not isinstance(rest, list) or not rest:
		raise DecodeError("Binary needs at least one operator and operand")
	pairs = []
	for pair in rest:
		op, operand = _fields(pair, 2, "Binary operation")
		pairs.append((_op(op, BINARY_OPS, "binary"), from_json(operand, depth)))
	return syntax.Binary(from_json(first, depth), tuple(pairs))

def _read_logical(content, depth):
	op, operands = _fields(content, 2, "Logical")
	return syntax.Logical(_op(op, LOGICAL_OPS, "logical"), _many(operands, depth, "Logical operands", 2))

def _read_grouping(content, depth): return syntax.Grouping(from_json(content, depth))

def _read_conditional(content, depth):
	return syntax.Conditional(*(from_json(x, depth) for x in _fields(content, 3, "Conditional")))

def _read_list(content, depth): return syntax.ListExpr(_many(content, depth, "ListExpr"))

def _read_map(content, depth):
	if not isinstance(content, list):
		raise DecodeError("MapExpr content must be an array")
	entries = []
	for entry in content:
		key, value = _fields(entry, 2, "MapExpr entry")
		entries.append((from_json(key, depth), from_json(value, depth)))
	return syntax.MapExpr(tuple(entries))

_READERS = {
	"Literal": _read_literal,
	"Identifier": _read_identifier,
	"MemberAccess": _read_member,
	"Index": _read_index,
	"Call": _read_call,
	"Unary": _read_unary,
	"Binary": _read_binary,
	"Logical": _read_logical,
	"Grouping": _read_grouping,
	"Conditional": _read_conditional,
	"ListExpr": _read_list,
	"MapExpr": _read_map,
}
