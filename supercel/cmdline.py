"""
This evaluates one request for the supercel expression evaluator.

{0}

For example:

    supercel request.json --answers answers.json

evaluates the request, answering each platform property from answers.json,
and prints the result as a wire value, or else tries to explain why not.

    supercel -h

will explain all the arguments.
"""
import sys, argparse, json
from pathlib import Path

parser = argparse.ArgumentParser(
	prog="supercel",
	description="Evaluate an expression request against canned host answers.",
)
parser.add_argument("request", help="a JSON file with 'variables', optional 'platform' and 'device', and 'expression' or 'ast'.")
parser.add_argument('-a', "--answers", help="a JSON file mapping each platform property to the wire value it answers; device properties go under 'device'.")
parser.add_argument('-p', "--parse", action="store_true", help="Print the request's syntax tree as AST JSON instead of evaluating it.")
parser.add_argument('-m', "--max-steps", type=int, help="Give up after evaluating this many syntax nodes.")
parser.add_argument('-v', "--verbose", action="count", help="Trace host requests and answers to stderr.")

def _load_answers(path):
	from .bridge import CannedBridge
	from .environment import DEVICE
	from .errors import DecodeError
	from .values import decode, is_wire
	if path is None: return None
	document = json.loads(Path(path).read_text(encoding="utf-8"))
	if not isinstance(document, dict):
		raise DecodeError("The answers file must hold a JSON object")
	device = {}
	if isinstance(document.get(DEVICE), dict) and not is_wire(document[DEVICE]):
		device = document.pop(DEVICE)
	return CannedBridge(
		{name: decode(wire) for name, wire in document.items()},
		{name: decode(wire) for name, wire in device.items()},
	)

def _expression_of(text:str) -> str:
	try: document = json.loads(text)
	except ValueError: return ""
	source = document.get("expression") if isinstance(document, dict) else None
	return source if isinstance(source, str) else ""

def run(args):
	from .diagnostics import Report
	from .errors import CelError, DecodeError, ExprSyntaxError
	from . import transcript, read_request, evaluate
	from .values import dumps
	report = Report(verbose=args.verbose)
	try:
		text = Path(args.request).read_text(encoding="utf-8")
		bridge = _load_answers(args.answers)
	except (OSError, ValueError) as ex:
		print("Cannot read the input: %s" % ex, file=sys.stderr)
		return 1
	except CelError as ex:
		report.bad_request(ex)
		report.complain_to_console()
		return 1
	source = _expression_of(text)
	try:
		tree, environment = read_request(text)
		if args.parse:
			print(transcript.dumps(tree))
			return 0
		value = evaluate(tree, environment, bridge, max_steps=args.max_steps, report=report)
	except ExprSyntaxError as ex:
		report.syntax_error(source, ex)
	except DecodeError as ex:
		report.bad_request(ex)
	except CelError as ex:
		report.failed(source, ex.site, ex)
	else:
		print(dumps(value))
		return 0
	report.complain_to_console()
	return 1

def main():
	if len(sys.argv) > 1:
		exit(run(parser.parse_args()))
	else:
		print(__doc__.strip().format(parser.format_usage()))
