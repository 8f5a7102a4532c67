"""
Everything that can go wrong, as exceptions.

Each class carries a `kind`, which is the name the JSON boundary reports.
The core raises these and lets them propagate; only the JSON entry point
and the command line turn them back into data.
"""

class CelError(Exception):
	kind = "Error"
	site = None  # Span of the innermost syntax being evaluated, once known.

	def __init__(self, message:str):
		super().__init__(message)
		self.message = message

	def details(self) -> dict:
		""" Extra fields for the JSON description, beyond kind and message. """
		return {}

	def describe(self) -> dict:
		return {"kind": self.kind, "message": self.message, **self.details()}

class ExprSyntaxError(CelError):
	kind = "SyntaxError"
	def __init__(self, position:int, message:str):
		super().__init__(message)
		self.position = position
	def __str__(self): return "%s (at offset %d)" % (self.message, self.position)
	def details(self): return {"position": self.position}

class DecodeError(CelError):
	kind = "DecodeError"

class EvaluationError(CelError):
	""" Fatal to one evaluation, never to the process. """
	recoverable = True  # Whether `maybe(...)` may fall back past it.

class UndefinedReference(EvaluationError):
	kind = "UndefinedReference"
	def __init__(self, path:str, message:str=None):
		super().__init__(message or "Undeclared reference to '%s'" % path)
		self.path = path
	def details(self): return {"path": self.path}

class TypeMismatch(EvaluationError):
	kind = "TypeMismatch"
	def __init__(self, expected:str, actual:str, context:str=""):
		message = "expected %s but found %s" % (expected, actual)
		super().__init__(context + ": " + message if context else message)
		self.expected, self.actual = expected, actual
	def details(self): return {"expected": self.expected, "actual": self.actual}

class DivisionByZero(EvaluationError):
	kind = "DivisionByZero"
	def __init__(self, op:str):
		super().__init__("Division by zero in '%s'" % op)

class Overflow(EvaluationError):
	kind = "Overflow"

class ArityError(EvaluationError):
	kind = "ArityError"
	def __init__(self, name:str, expected:int, got:int):
		plural = '' if expected == 1 else 's'
		super().__init__("'%s' takes %d argument%s, but got %d" % (name, expected, plural, got))
		self.name, self.expected, self.got = name, expected, got
	def details(self): return {"name": self.name, "expected": self.expected, "got": self.got}

class HostCallbackError(EvaluationError):
	kind = "HostCallbackError"
	recoverable = False
	def __init__(self, name:str, cause):
		super().__init__("Host could not compute '%s': %s" % (name, cause))
		self.name, self.cause = name, cause
	def details(self): return {"name": self.name, "cause": str(self.cause)}

class StepLimitExceeded(EvaluationError):
	kind = "StepLimitExceeded"
	recoverable = False
	def __init__(self, limit:int, what:str="steps"):
		super().__init__("Evaluation exceeded %d %s" % (limit, what))
		self.limit = limit
	def details(self): return {"limit": self.limit}
