"""
The bindings an expression sees.

Three channels share the one root map on the wire, but stay apart in here:
"variables" are what names resolve to, while "platform" and "device" only
declare (for tooling) which properties a host is expected to answer.
Nothing ever computes a value out of those declarations; calls such as
`platform.<name>(...)` go to the host bridge at evaluation time.
"""
from typing import Sequence
from .errors import UndefinedReference, DecodeError
from .values import Value, Map, List, decode, is_wire

PLATFORM = "platform"
DEVICE = "device"
HOST_CHANNELS = (PLATFORM, DEVICE)

class Environment:
	def __init__(self, variables:Map, declarations:Map=None, device:Map=None):
		assert isinstance(variables, Map), variables
		self.variables = variables
		self.declarations = declarations if declarations is not None else Map({})
		self.device = device if device is not None else Map({})
		assert isinstance(self.declarations, Map), self.declarations
		assert isinstance(self.device, Map), self.device

	@staticmethod
	def from_value(root) -> "Environment":
		""" Accept the single-map form: {"variables": Map, "platform": Map, "device": Map}. """
		if isinstance(root, Environment): return root
		if not isinstance(root, Map):
			raise DecodeError("An environment must be a map, not %s" % getattr(root, "tag", type(root).__name__))
		branches = [root.payload.get(key, Map({})) for key in ("variables",) + HOST_CHANNELS]
		if not all(isinstance(b, Map) for b in branches):
			raise DecodeError("The 'variables', 'platform' and 'device' branches must be maps")
		return Environment(*branches)

	@staticmethod
	def from_request(request:dict) -> "Environment":
		""" Build from the JSON shape that embedding hosts send. """
		return Environment(
			_decode_variables(request.get("variables")),
			_decode_declarations(request.get(PLATFORM), PLATFORM),
			_decode_declarations(request.get(DEVICE), DEVICE),
		)

	def as_value(self) -> Map:
		return Map({"variables": self.variables, PLATFORM: self.declarations, DEVICE: self.device})

	def resolve(self, path:Sequence[str]) -> Value:
		assert path, "An empty path refers to nothing."
		if path[0] == PLATFORM:
			here, rest = self.declarations, path[1:]
		elif path[0] == DEVICE:
			here, rest = self.device, path[1:]
		else:
			here, rest = self.variables, path
		for depth, key in enumerate(rest):
			if not isinstance(here, Map) or key not in here.payload:
				raise UndefinedReference(".".join(path[:len(path) - len(rest) + depth + 1]))
			here = here.payload[key]
		return here

	def __repr__(self):
		return "<Environment %s; platform %s; device %s>" % (
			sorted(self.variables.payload), sorted(self.declarations.payload), sorted(self.device.payload),
		)

def _decode_variables(document) -> Map:
	if document is None: return Map({})
	if not isinstance(document, dict):
		raise DecodeError("'variables' must be an object")
	if set(document) == {"map"} and not is_wire(document["map"]):
		# The older host shape wraps the bindings: {"map": {name: wire, ...}}
		document = document["map"]
		if not isinstance(document, dict):
			raise DecodeError("'variables.map' must be an object")
	bindings = {}
	for name, wire in document.items():
		try: bindings[name] = decode(wire)
		except DecodeError as ex: raise DecodeError("In variable %r: %s" % (name, ex.message)) from None
	return Map(bindings)

def _decode_declarations(document, channel:str) -> Map:
	if document is None: return Map({})
	if not isinstance(document, dict):
		raise DecodeError("'%s' must be an object" % channel)
	declarations = {}
	for name, examples in document.items():
		if not isinstance(examples, list):
			raise DecodeError("%s declaration %r must be an array of wire values" % (channel.capitalize(), name))
		try: declarations[name] = List([decode(wire) for wire in examples])
		except DecodeError as ex: raise DecodeError("In %s declaration %r: %s" % (channel, name, ex.message)) from None
	return Map(declarations)
