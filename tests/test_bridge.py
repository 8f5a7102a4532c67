import asyncio
import json
import unittest
from unittest import mock
from supercel.front_end import parse
from supercel.environment import Environment
from supercel.executive import Evaluation, State, evaluate, evaluate_async
from supercel.bridge import CallbackBridge, WireBridge, CachingBridge, CannedBridge, as_bridge
from supercel.errors import HostCallbackError, DecodeError, TypeMismatch
from supercel.values import TRUE, FALSE, Int, Uint, String, Map

ENVIRONMENT = Environment(Map({"user": Map({"some_value": Uint(7)})}))
SCENARIO = parse('platform.daysSinceEvent("test") == user.some_value')

class SyncHost:
	def __init__(self, answer:str):
		self.answer = answer
		self.calls = []
	def computed_property(self, name, args):
		self.calls.append((name, json.loads(args)))
		return self.answer

class DeviceHost(SyncHost):
	def __init__(self, answer:str, device_answer:str):
		super().__init__(answer)
		self.device_answer = device_answer
	def device_property(self, name, args):
		self.calls.append(("device." + name, json.loads(args)))
		return self.device_answer

class AsyncHost(SyncHost):
	async def computed_property(self, name, args):
		await asyncio.sleep(0)
		return super().computed_property(name, args)

class EvaluationStateTests(unittest.TestCase):
	""" Step an evaluation by hand, the way a host with its own event loop would. """

	def test_suspend_and_resume(self):
		evaluation = Evaluation(SCENARIO, ENVIRONMENT)
		self.assertIs(State.READY, evaluation.state)
		self.assertIs(State.AWAITING_HOST, evaluation.start())
		self.assertEqual("daysSinceEvent", evaluation.pending.name)
		self.assertEqual((String("test"),), evaluation.pending.args)
		self.assertIs(State.COMPLETED, evaluation.resume(Uint(7)))
		self.assertIsNone(evaluation.pending)
		self.assertEqual(TRUE, evaluation.outcome())

	def test_one_request_at_a_time(self):
		evaluation = Evaluation(parse("platform.a() + platform.b()"), ENVIRONMENT)
		evaluation.start()
		self.assertEqual("a", evaluation.pending.name)
		evaluation.resume(Int(1))
		self.assertEqual("b", evaluation.pending.name)
		evaluation.resume(Int(2))
		self.assertEqual(Int(3), evaluation.outcome())

	def test_fail_unwinds(self):
		evaluation = Evaluation(SCENARIO, ENVIRONMENT)
		evaluation.start()
		self.assertIs(State.FAILED, evaluation.fail(HostCallbackError("daysSinceEvent", "unplugged")))
		with self.assertRaises(HostCallbackError):
			evaluation.outcome()

	def test_non_value_answer_fails(self):
		evaluation = Evaluation(SCENARIO, ENVIRONMENT)
		evaluation.start()
		self.assertIs(State.FAILED, evaluation.resume(7))
		self.assertIsInstance(evaluation.error, HostCallbackError)

	def test_late_answers_after_cancel_are_ignored(self):
		evaluation = Evaluation(SCENARIO, ENVIRONMENT)
		evaluation.start()
		evaluation.cancel()
		self.assertIs(State.CANCELLED, evaluation.state)
		self.assertIs(State.CANCELLED, evaluation.resume(Uint(7)))
		self.assertIs(State.CANCELLED, evaluation.fail(HostCallbackError("daysSinceEvent", "late")))
		with self.assertRaises(RuntimeError):
			evaluation.outcome()

	def test_failure_without_host(self):
		evaluation = Evaluation(parse("7u == 7"), ENVIRONMENT)
		self.assertIs(State.FAILED, evaluation.start())
		self.assertIsInstance(evaluation.error, TypeMismatch)

class AdapterTests(unittest.TestCase):

	def test_scenario(self):
		for answer, expect in [(Uint(7), TRUE), (Uint(8), FALSE)]:
			with self.subTest(answer=answer):
				self.assertEqual(expect, evaluate(SCENARIO, ENVIRONMENT, CallbackBridge(lambda name, args: answer)))

	def test_wire_bridge(self):
		host = SyncHost('{"type": "uint", "value": 7}')
		self.assertEqual(TRUE, evaluate(SCENARIO, ENVIRONMENT, WireBridge(host)))
		self.assertEqual([("daysSinceEvent", [{"type": "string", "value": "test"}])], host.calls)

	def test_malformed_answer(self):
		for text in ["not json", '{"type": "uint"}', '{"type": "uint", "value": -7}']:
			with self.subTest(text):
				with self.assertRaises(HostCallbackError) as cm:
					evaluate(SCENARIO, ENVIRONMENT, WireBridge(SyncHost(text)))
				self.assertEqual("daysSinceEvent", cm.exception.name)
				self.assertIsInstance(cm.exception.cause, DecodeError)

	def test_host_exceptions_are_wrapped(self):
		def boom(name, args): raise KeyError(name)
		with self.assertRaises(HostCallbackError) as cm:
			evaluate(SCENARIO, ENVIRONMENT, boom)
		self.assertIsInstance(cm.exception.cause, KeyError)

	def test_non_value_answer(self):
		with self.assertRaises(HostCallbackError):
			evaluate(SCENARIO, ENVIRONMENT, CallbackBridge(lambda name, args: 7))

	def test_sync_driver_refuses_async_bridge(self):
		async def later(name, args): return Uint(7)
		with self.assertRaises(HostCallbackError):
			evaluate(SCENARIO, ENVIRONMENT, CallbackBridge(later))

	def test_caching_bridge(self):
		inner = CallbackBridge(mock.Mock(return_value=Int(1)))
		bridge = CachingBridge(inner)
		self.assertEqual(Int(3), evaluate(parse("platform.f(1) + platform.f(1) + platform.f(2)"), ENVIRONMENT, bridge))
		self.assertEqual(2, inner.fn.call_count)

	def test_canned_bridge(self):
		bridge = CannedBridge({"daysSinceEvent": Uint(7)})
		self.assertEqual(TRUE, evaluate(SCENARIO, ENVIRONMENT, bridge))
		with self.assertRaises(HostCallbackError):
			evaluate(parse("platform.other()"), ENVIRONMENT, bridge)

	def test_wire_bridge_device_channel(self):
		host = DeviceHost('{"type": "uint", "value": 7}', '{"type": "bool", "value": true}')
		tree = parse("device.charging() && platform.daysSinceEvent('test') == user.some_value")
		self.assertEqual(TRUE, evaluate(tree, ENVIRONMENT, WireBridge(host)))
		self.assertEqual([
			("device.charging", []),
			("daysSinceEvent", [{"type": "string", "value": "test"}]),
		], host.calls)

	def test_wire_host_without_device_property(self):
		with self.assertRaises(HostCallbackError) as cm:
			evaluate(parse("device.charging()"), ENVIRONMENT, WireBridge(SyncHost("{}")))
		self.assertIsInstance(cm.exception.cause, AttributeError)

	def test_pending_request_names_its_channel(self):
		evaluation = Evaluation(parse("device.charging()"), ENVIRONMENT)
		evaluation.start()
		self.assertEqual("device", evaluation.pending.channel)
		self.assertEqual("device.charging", evaluation.pending.path)

	def test_caching_keeps_channels_apart(self):
		inner = CallbackBridge(mock.Mock(return_value=Int(1)), mock.Mock(return_value=Int(10)))
		bridge = CachingBridge(inner)
		tree = parse("platform.f(1) + device.f(1) + platform.f(1) + device.f(1)")
		self.assertEqual(Int(22), evaluate(tree, ENVIRONMENT, bridge))
		self.assertEqual(1, inner.fn.call_count)
		self.assertEqual(1, inner.device.call_count)

	def test_canned_device_answers(self):
		bridge = CannedBridge({"f": Int(1)}, {"f": Int(2)})
		self.assertEqual(Int(3), evaluate(parse("platform.f() + device.f()"), ENVIRONMENT, bridge))
		with self.assertRaises(HostCallbackError):
			evaluate(parse("device.g()"), ENVIRONMENT, bridge)

	def test_as_bridge(self):
		self.assertIsNone(as_bridge(None))
		self.assertIsInstance(as_bridge(SyncHost("")), WireBridge)
		self.assertIsInstance(as_bridge(lambda name, args: None), CallbackBridge)
		with self.assertRaises(TypeError):
			as_bridge(42)

class AsyncTests(unittest.IsolatedAsyncioTestCase):

	async def test_async_callback(self):
		async def answer(name, args):
			await asyncio.sleep(0)
			return Uint(7)
		self.assertEqual(TRUE, await evaluate_async(SCENARIO, ENVIRONMENT, CallbackBridge(answer)))

	async def test_async_wire_host(self):
		host = AsyncHost('{"type": "uint", "value": 8}')
		self.assertEqual(FALSE, await evaluate_async(SCENARIO, ENVIRONMENT, host))
		self.assertEqual(1, len(host.calls))

	async def test_sync_bridge_under_async_driver(self):
		self.assertEqual(TRUE, await evaluate_async(SCENARIO, ENVIRONMENT, CannedBridge({"daysSinceEvent": Uint(7)})))

	async def test_async_failure(self):
		async def refuse(name, args): raise ConnectionError("offline")
		with self.assertRaises(HostCallbackError):
			await evaluate_async(SCENARIO, ENVIRONMENT, CallbackBridge(refuse))

	async def test_async_caching(self):
		calls = []
		async def answer(name, args):
			calls.append(args)
			return Int(2)
		bridge = CachingBridge(CallbackBridge(answer))
		tree = parse("platform.f('x') * platform.f('x')")
		self.assertEqual(Int(4), await evaluate_async(tree, ENVIRONMENT, bridge))
		self.assertEqual(1, len(calls))

	async def test_cancellation_stops_the_walk(self):
		gate = asyncio.Event()
		after = mock.Mock(return_value=TRUE)
		async def stalled(name, args):
			if name == "first":
				await gate.wait()
				return TRUE
			return after(name, args)
		task = asyncio.ensure_future(evaluate_async(parse("platform.first() && platform.second()"), ENVIRONMENT, CallbackBridge(stalled)))
		await asyncio.sleep(0)
		task.cancel()
		with self.assertRaises(asyncio.CancelledError):
			await task
		gate.set()
		await asyncio.sleep(0)
		after.assert_not_called()

if __name__ == '__main__':
	unittest.main()
