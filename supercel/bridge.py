"""
How the evaluator reaches the host for computed properties.

The evaluator only ever sees HostBridge.invoke(name, args) for
`platform.<name>(...)`, and HostBridge.invoke_device(name, args) for
`device.<name>(...)`. Either answers with a Value or with an awaitable of
one. The adapters here fit that onto the shapes hosts actually come in.
Whatever goes wrong on the host's side becomes a HostCallbackError naming
the property, and ends that one evaluation.
"""
import inspect
import json
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple, Union
from .environment import PLATFORM, DEVICE
from .errors import HostCallbackError
from .evaluator import HostRequest
from .values import Value, encode, loads

ANSWER = Union[Value, Awaitable[Value]]
HOST_FUNCTION = Callable[[str, Tuple[Value, ...]], ANSWER]

class HostBridge(ABC):
	@abstractmethod
	def invoke(self, name:str, args:Tuple[Value, ...]) -> ANSWER:
		raise NotImplementedError(type(self))

	def invoke_device(self, name:str, args:Tuple[Value, ...]) -> ANSWER:
		raise LookupError("This host answers no device properties")

class CallbackBridge(HostBridge):
	"""
	Wrap a plain function, or a coroutine function, of (name, args).
	Device properties go to a second such function, if there is one.
	"""
	def __init__(self, fn:HOST_FUNCTION, device:HOST_FUNCTION=None):
		self.fn = fn
		self.device = device
	def invoke(self, name, args): return self.fn(name, args)
	def invoke_device(self, name, args):
		if self.device is None: return super().invoke_device(name, args)
		return self.device(name, args)

def encode_args(args:Sequence[Value]) -> str:
	return json.dumps([encode(a) for a in args])

class WireBridge(HostBridge):
	"""
	Talk to a host object over JSON text: host.computed_property(name, args_json)
	and host.device_property(name, args_json) get the arguments as a JSON array
	of wire values and answer with the text of one wire value, either directly
	or as an awaitable.
	"""
	def __init__(self, host):
		self.host = host
	def invoke(self, name, args):
		return self._decode(self.host.computed_property(name, encode_args(args)))
	def invoke_device(self, name, args):
		return self._decode(self.host.device_property(name, encode_args(args)))
	def _decode(self, answer):
		if inspect.isawaitable(answer): return self._decode_later(answer)
		return loads(answer)
	@staticmethod
	async def _decode_later(answer):
		return loads(await answer)

class CachingBridge(HostBridge):
	""" Ask the inner bridge once per distinct (channel, name, args), for as long as this object lives. """
	def __init__(self, inner:HostBridge):
		self.inner = inner
		self._memo : Dict[Tuple[str, str, str], Value] = {}
	def invoke(self, name, args): return self._recall(self.inner.invoke, PLATFORM, name, args)
	def invoke_device(self, name, args): return self._recall(self.inner.invoke_device, DEVICE, name, args)
	def _recall(self, ask, channel, name, args):
		key = channel, name, encode_args(args)
		if key in self._memo: return self._memo[key]
		answer = ask(name, args)
		if inspect.isawaitable(answer): return self._remember_later(key, answer)
		self._memo[key] = answer
		return answer
	async def _remember_later(self, key, answer):
		self._memo[key] = value = await answer
		return value

class CannedBridge(HostBridge):
	""" Answer from fixed tables of property name to value, whatever the arguments. """
	def __init__(self, answers:Dict[str, Value], device:Dict[str, Value]=None):
		self.answers = answers
		self.device = device or {}
	def invoke(self, name, args): return self._lookup(self.answers, PLATFORM, name)
	def invoke_device(self, name, args): return self._lookup(self.device, DEVICE, name)
	@staticmethod
	def _lookup(table, channel, name):
		try: return table[name]
		except KeyError: raise LookupError("No canned answer for '%s.%s'" % (channel, name)) from None

def as_bridge(thing) -> Optional[HostBridge]:
	""" Accept a bridge, a wire-style host object, or a callable. """
	if thing is None or isinstance(thing, HostBridge): return thing
	if hasattr(thing, "computed_property") or hasattr(thing, "device_property"): return WireBridge(thing)
	if callable(thing): return CallbackBridge(thing)
	raise TypeError("Cannot use %r as a host bridge" % (thing,))

###############################################################################
#
#  The drivers call these to turn a HostRequest into a Value or a HostCallbackError.
#

def _ask(bridge:Optional[HostBridge], request:HostRequest) -> ANSWER:
	if bridge is None:
		raise HostCallbackError(request.name, "no host bridge is attached")
	invoke = bridge.invoke_device if request.channel == DEVICE else bridge.invoke
	try: return invoke(request.name, request.args)
	except Exception as ex: raise HostCallbackError(request.name, ex) from ex
def _check(request:HostRequest, answer) -> Value:
	if not isinstance(answer, Value):
		raise HostCallbackError(request.name, "the answer %r is not a value" % (answer,))
	return answer

def consult(bridge:Optional[HostBridge], request:HostRequest) -> Value:
	answer = _ask(bridge, request)
	if inspect.isawaitable(answer):
		if inspect.iscoroutine(answer): answer.close()
		raise HostCallbackError(request.name, "the bridge answered asynchronously; use evaluate_async")
	return _check(request, answer)

async def consult_async(bridge:Optional[HostBridge], request:HostRequest) -> Value:
	answer = _ask(bridge, request)
	if inspect.isawaitable(answer):
		try: answer = await answer
		except Exception as ex: raise HostCallbackError(request.name, ex) from ex
	return _check(request, answer)
