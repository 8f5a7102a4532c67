"""
An embeddable evaluator for small CEL-style expressions,
whose `platform.<name>(...)` and `device.<name>(...)` calls are answered by the host.

The JSON entry points take a request document:

	{
		"variables": {name: wire value, ...},
		"platform": {name: [wire value, ...], ...},
		"device": {name: [wire value, ...], ...},
		"expression": "platform.daysSinceEvent('test') == user.some_value"
	}

(or "ast" in place of "expression", holding what parse_to_ast produced)
and give back either the wire encoding of the result, or else
{"error": {"kind": ..., "message": ..., ...}}.
"""
import json
from typing import Tuple
from . import syntax, transcript
from .bridge import HostBridge, CallbackBridge, WireBridge, CachingBridge, CannedBridge
from .diagnostics import Report
from .environment import Environment
from .errors import CelError, DecodeError
from .executive import Evaluation, State, evaluate, evaluate_async
from .front_end import parse
from .values import Value, dumps

__all__ = [
	"parse", "parse_to_ast", "evaluate", "evaluate_async",
	"evaluate_with_context", "evaluate_with_context_async",
	"Environment", "Evaluation", "State", "Report", "Value",
	"HostBridge", "CallbackBridge", "WireBridge", "CachingBridge", "CannedBridge",
]

def parse_to_ast(text:str) -> str:
	""" Parse once here; send the JSON wherever the evaluation will happen. """
	return transcript.dumps(parse(text))

def read_request(request_json:str) -> Tuple[syntax.Expression, Environment]:
	try:
		return _read_request(request_json)
	except RecursionError:
		raise DecodeError("The request nests too deeply to read") from None

def _read_request(request_json:str) -> Tuple[syntax.Expression, Environment]:
	try: request = json.loads(request_json)
	except (TypeError, ValueError) as ex:
		raise DecodeError("The request is not valid JSON: %s" % ex) from None
	if not isinstance(request, dict):
		raise DecodeError("The request must be a JSON object")
	if ("expression" in request) == ("ast" in request):
		raise DecodeError("The request needs exactly one of 'expression' or 'ast'")
	if "expression" in request:
		if not isinstance(request["expression"], str):
			raise DecodeError("'expression' must be a string")
		tree = parse(request["expression"])
	else:
		tree = transcript.from_json(request["ast"])
	return tree, Environment.from_request(request)

def _failure(ex:CelError, report:Report) -> str:
	report.info("Failed with", ex.kind + ":", ex.message)
	return json.dumps({"error": ex.describe()})

def evaluate_with_context(request_json:str, bridge=None, *, max_steps:int=None, report:Report=None) -> str:
	report = report or Report(verbose=0)
	try:
		tree, environment = read_request(request_json)
		value = evaluate(tree, environment, bridge, max_steps=max_steps, report=report)
	except CelError as ex:
		return _failure(ex, report)
	return dumps(value)

async def evaluate_with_context_async(request_json:str, bridge=None, *, max_steps:int=None, report:Report=None) -> str:
	report = report or Report(verbose=0)
	try:
		tree, environment = read_request(request_json)
		value = await evaluate_async(tree, environment, bridge, max_steps=max_steps, report=report)
	except CelError as ex:
		return _failure(ex, report)
	return dumps(value)
