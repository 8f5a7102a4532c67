"""
Drive evaluations to completion.

An Evaluation is the walk made explicit: it knows its state, the host
request it is waiting on (if any), and its eventual result or error.
Hosts with their own event machinery can step one by hand with start,
resume, fail and cancel. Everyone else calls evaluate or evaluate_async.
"""
import asyncio
import enum
from typing import Optional, Union
from . import syntax
from .bridge import HostBridge, as_bridge, consult, consult_async
from .diagnostics import Report
from .environment import Environment
from .errors import CelError, HostCallbackError
from .evaluator import TreeWalker, HostRequest
from .values import Value, Map

class State(enum.Enum):
	READY = "ready"
	RUNNING = "running"
	AWAITING_HOST = "awaiting host"
	COMPLETED = "completed"
	FAILED = "failed"
	CANCELLED = "cancelled"

FINISHED = frozenset([State.COMPLETED, State.FAILED, State.CANCELLED])

class Evaluation:
	pending : Optional[HostRequest]
	result : Optional[Value]
	error : Optional[CelError]

	def __init__(self, tree:syntax.Expression, environment:Union[Environment, Map], *, max_steps:int=None, report:Report=None):
		""" The environment may also be given as its single root map. """
		self.report = report or Report(verbose=0)
		environment = Environment.from_value(environment)
		self._walker = TreeWalker(environment, max_steps=max_steps, report=self.report)
		self._process = self._walker.walk(tree)
		self.state = State.READY
		self.pending = self.result = self.error = None

	def start(self) -> State:
		assert self.state is State.READY, self.state
		return self._advance(self._process.send, None)

	def resume(self, answer:Value) -> State:
		""" Carry on with the host's answer. Late answers to a cancelled evaluation are ignored. """
		if self.state is State.CANCELLED: return self.state
		assert self.state is State.AWAITING_HOST, self.state
		if not isinstance(answer, Value):
			return self.fail(HostCallbackError(self.pending.name, "the answer %r is not a value" % (answer,)))
		return self._advance(self._process.send, answer)

	def fail(self, exc:BaseException) -> State:
		""" The host could not answer: raise that at the call site and let it unwind. """
		if self.state is State.CANCELLED: return self.state
		assert self.state is State.AWAITING_HOST, self.state
		return self._advance(self._process.throw, exc)

	def cancel(self):
		if self.state in FINISHED: return
		self._process.close()
		self.state = State.CANCELLED
		self.pending = None
		self.report.info("Evaluation cancelled.")

	def _advance(self, step, argument) -> State:
		self.state, self.pending = State.RUNNING, None
		try: request = step(argument)
		except StopIteration as stop:
			self.state, self.result = State.COMPLETED, stop.value
			self.report.info("Evaluation completed in", self.steps, "steps.")
		except CelError as ex:
			self.state, self.error = State.FAILED, ex
			self.report.info("Evaluation failed:", ex.kind, ex.message)
		else:
			self.state, self.pending = State.AWAITING_HOST, request
		return self.state

	@property
	def steps(self) -> int: return self._walker.steps

	def outcome(self) -> Value:
		""" The result, or else raise the error. Only meaningful once finished. """
		if self.state is State.COMPLETED: return self.result
		if self.state is State.FAILED: raise self.error
		raise RuntimeError("Evaluation is %s, not finished" % self.state.value)

def evaluate(tree:syntax.Expression, environment:Union[Environment, Map], bridge:HostBridge=None, *, max_steps:int=None, report:Report=None) -> Value:
	""" Run to completion, answering host requests synchronously. """
	bridge = as_bridge(bridge)
	evaluation = Evaluation(tree, environment, max_steps=max_steps, report=report)
	evaluation.start()
	while evaluation.state is State.AWAITING_HOST:
		try: answer = consult(bridge, evaluation.pending)
		except HostCallbackError as ex: evaluation.fail(ex)
		else: evaluation.resume(answer)
	return evaluation.outcome()

async def evaluate_async(tree:syntax.Expression, environment:Union[Environment, Map], bridge:HostBridge=None, *, max_steps:int=None, report:Report=None) -> Value:
	"""
	Run to completion, awaiting the bridge where it answers asynchronously.
	If the awaiting task is cancelled, so is the evaluation.
	"""
	bridge = as_bridge(bridge)
	evaluation = Evaluation(tree, environment, max_steps=max_steps, report=report)
	evaluation.start()
	try:
		while evaluation.state is State.AWAITING_HOST:
			try: answer = await consult_async(bridge, evaluation.pending)
			except HostCallbackError as ex: evaluation.fail(ex)
			else: evaluation.resume(answer)
	except asyncio.CancelledError:
		evaluation.cancel()
		raise
	return evaluation.outcome()
