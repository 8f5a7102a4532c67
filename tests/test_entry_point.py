import json
import unittest
import supercel
from supercel import Environment, CallbackBridge, CannedBridge
from supercel.errors import DecodeError, UndefinedReference
from supercel.values import TRUE, FALSE, Uint, String, List, Map

def _request(expression="platform.daysSinceEvent(\"test\") == user.some_value", **extra):
	document = {
		"variables": {"user": {"type": "map", "value": {"some_value": {"type": "uint", "value": 7}}}},
		"platform": {"daysSinceEvent": []},
		"expression": expression,
	}
	document.update(extra)
	if expression is None: del document["expression"]
	return json.dumps(document)

def _answering(value):
	return CallbackBridge(lambda name, args: value)

class EntryPointTests(unittest.TestCase):

	def test_scenario(self):
		self.assertEqual({"type": "bool", "value": True}, json.loads(supercel.evaluate_with_context(_request(), _answering(Uint(7)))))
		self.assertEqual({"type": "bool", "value": False}, json.loads(supercel.evaluate_with_context(_request(), _answering(Uint(8)))))

	def test_wire_host(self):
		class Host:
			def computed_property(self, name, args):
				return json.dumps({"type": "uint", "value": 7})
		self.assertEqual({"type": "bool", "value": True}, json.loads(supercel.evaluate_with_context(_request(), Host())))

	def test_errors_come_back_as_json(self):
		for label, request, kind in [
			("syntax", _request("user.some_value =="), "SyntaxError"),
			("type", _request("7u == 7"), "TypeMismatch"),
			("division", _request("1 / 0"), "DivisionByZero"),
			("undefined", _request("user.missing_field"), "UndefinedReference"),
			("host", _request(), "HostCallbackError"),
			("bad json", "{", "DecodeError"),
			("no expression", _request(None), "DecodeError"),
			("both forms", _request(ast={"type": "Identifier", "value": "x"}), "DecodeError"),
			("bad variables", json.dumps({"variables": {"x": 1}, "expression": "x"}), "DecodeError"),
		]:
			with self.subTest(label):
				result = json.loads(supercel.evaluate_with_context(request))
				self.assertEqual(kind, result["error"]["kind"])
				self.assertTrue(result["error"]["message"])

	def test_syntax_error_position(self):
		result = json.loads(supercel.evaluate_with_context(_request("(1 + 2")))
		self.assertEqual(6, result["error"]["position"])

	def test_malformed_host_answer(self):
		class Host:
			def computed_property(self, name, args): return "definitely not json"
		result = json.loads(supercel.evaluate_with_context(_request(), Host()))
		self.assertEqual("HostCallbackError", result["error"]["kind"])
		self.assertEqual("daysSinceEvent", result["error"]["name"])

	def test_device_properties(self):
		class Host:
			def __init__(self): self.asked = []
			def computed_property(self, name, args):
				self.asked.append(("platform", name, json.loads(args)))
				return json.dumps({"type": "uint", "value": 7})
			def device_property(self, name, args):
				self.asked.append(("device", name, json.loads(args)))
				return json.dumps({"type": "double", "value": 3.0})
		host = Host()
		request = _request(
			"device.timeSinceEvent('install') == 3.0 && platform.daysSinceEvent('test') == user.some_value",
			device={"timeSinceEvent": [{"type": "string", "value": "install"}]},
		)
		self.assertEqual({"type": "bool", "value": True}, json.loads(supercel.evaluate_with_context(request, host)))
		self.assertEqual([
			("device", "timeSinceEvent", [{"type": "string", "value": "install"}]),
			("platform", "daysSinceEvent", [{"type": "string", "value": "test"}]),
		], host.asked)

	def test_long_sums_evaluate(self):
		for n in [300, 500, 2000]:
			with self.subTest(n=n):
				result = json.loads(supercel.evaluate_with_context(_request("+".join(["1"] * n))))
				self.assertEqual({"type": "int", "value": n}, result)
		result = json.loads(supercel.evaluate_with_context(_request(" || ".join(["false"] * 1000))))
		self.assertEqual({"type": "bool", "value": False}, result)

	def test_deep_nesting_is_an_error_not_a_crash(self):
		# Built as text: encoding such documents with json.dumps would itself recurse.
		deep_ast = '{"type": "Grouping", "value": ' * 2000 + '{"type": "Identifier", "value": "x"}' + '}' * 2000
		deep_wire = '{"type": "list", "value": [' * 5000 + '{"type": "int", "value": 1}' + ']}' * 5000
		for label, request, kind in [
			("parentheses", _request("(" * 2000 + "1" + ")" * 2000), "SyntaxError"),
			("negations", _request("!" * 2000 + "true"), "SyntaxError"),
			("ast", '{"variables": {}, "ast": %s}' % deep_ast, "DecodeError"),
			("variables", '{"variables": {"x": %s}, "expression": "x"}' % deep_wire, "DecodeError"),
		]:
			with self.subTest(label):
				result = json.loads(supercel.evaluate_with_context(request))
				self.assertEqual(kind, result["error"]["kind"])

	def test_step_limit(self):
		result = json.loads(supercel.evaluate_with_context(_request("1 + 2 + 3"), max_steps=2))
		self.assertEqual({"kind": "StepLimitExceeded", "limit": 2}, {k: result["error"][k] for k in ("kind", "limit")})

	def test_pre_parsed_ast(self):
		ast = json.loads(supercel.parse_to_ast('platform.daysSinceEvent("test") == user.some_value'))
		request = _request(None, ast=ast)
		self.assertEqual({"type": "bool", "value": True}, json.loads(supercel.evaluate_with_context(request, _answering(Uint(7)))))

	def test_variables_map_wrapper(self):
		request = json.dumps({
			"variables": {"map": {"greeting": {"type": "string", "value": "hi"}}},
			"expression": "greeting + '!'",
		})
		self.assertEqual({"type": "string", "value": "hi!"}, json.loads(supercel.evaluate_with_context(request)))

	def test_variable_named_map(self):
		request = json.dumps({
			"variables": {"map": {"type": "int", "value": 3}},
			"expression": "map * 2",
		})
		self.assertEqual({"type": "int", "value": 6}, json.loads(supercel.evaluate_with_context(request)))

class AsyncEntryPointTests(unittest.IsolatedAsyncioTestCase):
	async def test_scenario(self):
		async def answer(name, args): return Uint(7)
		result = await supercel.evaluate_with_context_async(_request(), CallbackBridge(answer))
		self.assertEqual({"type": "bool", "value": True}, json.loads(result))

	async def test_error(self):
		result = await supercel.evaluate_with_context_async(_request("nobody"))
		self.assertEqual("UndefinedReference", json.loads(result)["error"]["kind"])

class EnvironmentTests(unittest.TestCase):

	def test_from_request(self):
		env = Environment.from_request(json.loads(_request()))
		self.assertEqual(Uint(7), env.resolve(["user", "some_value"]))
		self.assertEqual(Map({"daysSinceEvent": List([])}), env.resolve(["platform"]))
		self.assertEqual(List([]), env.resolve(["platform", "daysSinceEvent"]))

	def test_missing_segments(self):
		env = Environment(Map({"a": Map({"b": String("c")})}))
		for path, where in [(["x"], "x"), (["a", "z"], "a.z"), (["a", "b", "c"], "a.b.c")]:
			with self.subTest(path=path):
				with self.assertRaises(UndefinedReference) as cm:
					env.resolve(path)
				self.assertEqual(where, cm.exception.path)

	def test_single_map_root(self):
		root = Map({
			"variables": Map({"k": String("v")}),
			"platform": Map({}),
			"device": Map({"battery": List([])}),
		})
		env = Environment.from_value(root)
		self.assertEqual(String("v"), env.resolve(["k"]))
		self.assertEqual(List([]), env.resolve(["device", "battery"]))
		self.assertEqual(root, env.as_value())
		with self.assertRaises(DecodeError):
			Environment.from_value(String("nope"))

	def test_evaluate_takes_the_single_map_root(self):
		root = Map({
			"variables": Map({"user": Map({"some_value": Uint(7)})}),
			"platform": Map({"daysSinceEvent": List([String("test")])}),
		})
		tree = supercel.parse('platform.daysSinceEvent("test") == user.some_value')
		self.assertEqual(TRUE, supercel.evaluate(tree, root, _answering(Uint(7))))
		self.assertEqual(FALSE, supercel.evaluate(tree, root, _answering(Uint(8))))

	def test_device_declarations(self):
		env = Environment.from_request(json.loads(_request(device={"battery": []})))
		self.assertEqual(Map({"battery": List([])}), env.resolve(["device"]))
		with self.assertRaises(DecodeError):
			Environment.from_request({"device": {"battery": 1}})

	def test_bad_declarations(self):
		with self.assertRaises(DecodeError):
			Environment.from_request({"platform": {"f": {"type": "int", "value": 1}}})

	def test_canned_bridge_is_exported(self):
		self.assertEqual(
			{"type": "bool", "value": True},
			json.loads(supercel.evaluate_with_context(_request(), CannedBridge({"daysSinceEvent": Uint(7)}))),
		)

if __name__ == '__main__':
	unittest.main()
