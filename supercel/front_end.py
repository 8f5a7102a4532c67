"""
Source text in; syntax tree out.

The grammar lives beside this file in grammar.lark. Lark builds the parse
tree and the TreeBuilder below turns that into the frozen node classes of
the syntax module, bottom-up and without recursion, so that a long chain
of operators cannot exhaust the stack. Any complaint from lark becomes an
ExprSyntaxError with a character position; there is no error recovery.
"""
from lark import Lark, Token, v_args
from lark.visitors import Transformer_NonRecursive
from lark.exceptions import UnexpectedInput, UnexpectedCharacters, UnexpectedToken, VisitError
from . import syntax
from .errors import ExprSyntaxError
from .values import (
	INT_MAX, UINT_MAX, NULL, TRUE, FALSE,
	Int, Uint, Double, String,
)

_parser = Lark.open(
	"grammar.lark",
	rel_to=__file__,
	parser="lalr",
	propagate_positions=True,
	maybe_placeholders=True,
)

def _span(meta):
	if getattr(meta, "empty", True): return syntax.NOWHERE
	return meta.start_pos, meta.end_pos

def _binary(op:str):
	level = syntax.PRECEDENCE[op]
	def build(self, meta, lhs, rhs):
		# The grammar is left-recursive, so a run arrives one operator at a time.
		if isinstance(lhs, syntax.Binary) and syntax.PRECEDENCE[lhs.rest[0][0]] == level:
			return syntax.Binary(lhs.first, lhs.rest + ((op, rhs),), _span(meta))
		return syntax.Binary(lhs, ((op, rhs),), _span(meta))
	return build

def _logical(op:str):
	def build(self, meta, lhs, rhs):
		if isinstance(lhs, syntax.Logical) and lhs.op == op:
			return syntax.Logical(op, lhs.operands + (rhs,), _span(meta))
		return syntax.Logical(op, (lhs, rhs), _span(meta))
	return build

@v_args(meta=True, inline=True)
class TreeBuilder(Transformer_NonRecursive):
	""" The parser calls these in a bottom-up tree transduction. """

	or_ = _logical("||")
	and_ = _logical("&&")
	eq, ne = _binary("=="), _binary("!=")
	lt, le, gt, ge = _binary("<"), _binary("<="), _binary(">"), _binary(">=")
	in_ = _binary("in")
	add, sub = _binary("+"), _binary("-")
	mul, div, mod = _binary("*"), _binary("/"), _binary("%")

	def conditional(self, meta, test, if_true, if_false):
		return syntax.Conditional(test, if_true, if_false, _span(meta))

	def not_(self, meta, operand): return syntax.Unary("!", operand, _span(meta))
	def neg(self, meta, operand): return syntax.Unary("-", operand, _span(meta))

	def member(self, meta, target, name:Token): return syntax.MemberAccess(target, str(name), _span(meta))
	def index(self, meta, target, index): return syntax.Index(target, index, _span(meta))
	def call(self, meta, callee, args): return syntax.Call(callee, args or (), _span(meta))

	def identifier(self, meta, name:Token): return syntax.Identifier(str(name), _span(meta))
	def grouping(self, meta, inner): return syntax.Grouping(inner, _span(meta))
	def list_expr(self, meta, items): return syntax.ListExpr(items or (), _span(meta))
	def map_expr(self, meta, entries): return syntax.MapExpr(entries or (), _span(meta))

	def arguments(self, meta, *items): return tuple(items)
	def entries(self, meta, *items): return tuple(items)
	def entry(self, meta, key, value): return key, value

	def int_(self, meta, token): return self._integer(meta, token, int(token), Int, INT_MAX)
	def hex_int(self, meta, token): return self._integer(meta, token, int(token[2:], 16), Int, INT_MAX)
	def uint(self, meta, token): return self._integer(meta, token, int(token[:-1]), Uint, UINT_MAX)
	def hex_uint(self, meta, token): return self._integer(meta, token, int(token[2:-1], 16), Uint, UINT_MAX)

	@staticmethod
	def _integer(meta, token, number, kind, limit):
		if number > limit:
			raise ExprSyntaxError(token.start_pos, "Integer literal %s is too large for %s" % (token, kind.tag))
		return syntax.Literal(kind(number), _span(meta))

	def double(self, meta, token):
		number = float(token)
		if number == float("inf"):
			raise ExprSyntaxError(token.start_pos, "Floating-point literal %s is too large" % token)
		return syntax.Literal(Double(number), _span(meta))

	def string(self, meta, token): return syntax.Literal(String(_unescape(token)), _span(meta))
	def true(self, meta): return syntax.Literal(TRUE, _span(meta))
	def false(self, meta): return syntax.Literal(FALSE, _span(meta))
	def null(self, meta): return syntax.Literal(NULL, _span(meta))

_builder = TreeBuilder()

_ESCAPES = {
	"\\": "\\", '"': '"', "'": "'", "/": "/", "?": "?", "`": "`",
	"a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
}
_CODE_POINT_WIDTH = {"x": 2, "u": 4, "U": 8}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

def _unescape(token:Token) -> str:
	body, out, i = token[1:-1], [], 0
	while i < len(body):
		c = body[i]
		if c != "\\":
			out.append(c)
			i += 1
			continue
		# The scanner guarantees a character follows every backslash.
		code, where = body[i+1], token.start_pos + 1 + i
		if code in _ESCAPES:
			out.append(_ESCAPES[code])
			i += 2
		elif code in _CODE_POINT_WIDTH:
			width = _CODE_POINT_WIDTH[code]
			digits = body[i+2:i+2+width]
			if len(digits) < width or not _HEX_DIGITS.issuperset(digits):
				raise ExprSyntaxError(where, "Escape \\%s needs %d hexadecimal digits" % (code, width))
			point = int(digits, 16)
			if point > 0x10FFFF:
				raise ExprSyntaxError(where, "Escape \\%s%s is not a valid code point" % (code, digits))
			out.append(chr(point))
			i += 2 + width
		else:
			raise ExprSyntaxError(where, "Unknown escape sequence \\%s" % code)
	return "".join(out)

def parse(source:str) -> syntax.Expression:
	""" Parse one expression or raise ExprSyntaxError. The result may be evaluated any number of times. """
	if not isinstance(source, str):
		raise TypeError("Expected source text, got %s" % type(source).__name__)
	if not source.strip():
		raise ExprSyntaxError(0, "The expression is empty.")
	try:
		tree = _parser.parse(source)
	except UnexpectedInput as ex:
		raise _translate(source, ex) from None
	try:
		expr = _builder.transform(tree)
	except VisitError as ex:
		if isinstance(ex.orig_exc, ExprSyntaxError): raise ex.orig_exc from None
		raise
	deep = syntax.too_deep(expr)
	if deep is not None:
		raise ExprSyntaxError(deep.left(), "The expression nests more than %d levels deep" % syntax.MAX_NESTING)
	return expr

##########################
#
#  Parse errors, and some hints about what probably went wrong.
#

_END = "$END"

_TERMINAL_TEXT = {
	_END: "end of input",
	"NAME": "a name", "INT": "a number", "UINT": "a number", "FLOAT": "a number",
	"HEX_INT": "a number", "HEX_UINT": "a number", "STRING": "a string",
	"RPAR": "')'", "LPAR": "'('", "RSQB": "']'", "LSQB": "'['",
	"RBRACE": "'}'", "LBRACE": "'{'", "COMMA": "','", "COLON": "':'", "DOT": "'.'",
}

_CHARACTER_HINTS = {
	"=": "Use '==' to compare two values.",
	"&": "The logical and-operator is '&&'.",
	"|": "The logical or-operator is '||'.",
	"\"": "This string seems to be missing its closing quote.",
	"'": "This string seems to be missing its closing quote.",
}

_TOKEN_HINTS = {
	_END: "The expression stops short. Is an operand or a closing bracket missing?",
	"RPAR": "There seems to be a stray ')' here.",
	"RSQB": "There seems to be a stray ']' here.",
	"COMMA": "Commas only separate arguments or list items.",
}

def _translate(source:str, ex:UnexpectedInput) -> ExprSyntaxError:
	if isinstance(ex, UnexpectedCharacters):
		char = source[ex.pos_in_stream]
		message = "Unexpected character %r" % char
		hint = _CHARACTER_HINTS.get(char)
		position = ex.pos_in_stream
	elif isinstance(ex, UnexpectedToken):
		kind = ex.token.type
		if kind == _END:
			message, position = "Unexpected end of input", len(source)
		else:
			message, position = "Unexpected %r" % str(ex.token), ex.token.start_pos
		hint = _TOKEN_HINTS.get(kind)
		expected = sorted({_TERMINAL_TEXT[t] for t in ex.expected if t in _TERMINAL_TEXT})
		if expected and not hint:
			hint = "Expected %s." % ", ".join(expected)
	else:
		message, position, hint = "Unexpected end of input", len(source), _TOKEN_HINTS[_END]
	return ExprSyntaxError(position, message + (". " + hint if hint else ""))
