"""
The most fundamental class in the syntax hierarchy,
kept apart from the concrete node types so that
diagnostics can speak of phrases without importing the lot.
"""
from typing import Tuple

Span = Tuple[int, int]
NOWHERE: Span = (0, 0)

class Phrase:
	"""
	Anything that came from somewhere in the source text.
	Offsets are character positions: left is inclusive, right exclusive.
	"""
	span: Span
	def left(self) -> int: return self.span[0]
	def right(self) -> int: return self.span[1]
