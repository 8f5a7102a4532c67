import sys, random
from typing import Any
from boozetools.support.failureprone import SourceText, illustration

from .ontology import Span
from .errors import CelError, ExprSyntaxError

def _outburst():
	particle = ["Oh, ", "Well, ", "Aw, ", "", ""]

	minced_oaths = [
		'Ack', 'Blargh', 'Confound it', 'Crud', 'Curses', "Crikey",
		'Drat', 'Fiddlesticks', 'Good Grief', "Great Scott",
		'Jeepers', 'Heavens', 'Nuts', 'Rats',
	]

	resignations = [
		'I cannot continue.',
		'I have no idea what the right answer is.',
		'That expression will not evaluate.',
	]

	return "%s%s! %s"%tuple(map(random.choice, (particle, minced_oaths, resignations)))

class Report:
	"""
	Diagnostic sink for one run of the command line, or for one embedded
	evaluation whose host wants to watch. Verbose mode traces host requests
	and answers to stderr; issues collect until someone complains about them.
	"""
	_issues : list["Pic"]

	def __init__(self, *, verbose:int=0):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)

	def issue(self, it:Any):
		self._issues.append(it)

	def reset(self):
		self._issues.clear()

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		""" Emit all the issues to the console. """
		_bemoan(self._issues)

	# Methods the front-end is likely to call:
	def syntax_error(self, source:str, ex:ExprSyntaxError):
		where = min(ex.position, len(source))
		problem = [Annotation(source, (where, where+1), "confused here")] if source.strip() else []
		self.issue(Pic("The expression could not be parsed.", problem, [ex.message]))

	# Methods the evaluator and entry point are likely to call:
	def failed(self, source:str, site:Span, ex:CelError):
		intro = "Evaluation failed with %s." % ex.kind
		problem = [Annotation(source, site, "here")] if source and site and site[1] > site[0] else []
		self.issue(Pic(intro, problem, [ex.message]))

	def bad_request(self, ex:CelError):
		self.issue(Pic("The request could not be understood.", [], [ex.message]))

class Annotation:
	slice: slice
	caption: str
	def __init__(self, source:str, span:Span, caption:str=""):
		self.text = SourceText(source)
		self.slice = slice(*span)
		self.caption = caption
	def illustrate(self):
		row, col = self.text.find_row_col(self.slice.start)
		single_line = self.text.line_of_text(row)
		width = max(1, self.slice.stop - self.slice.start)
		return illustration(single_line, col, width, prefix='% 6d |' % row, caption=self.caption)

class Pic:
	def __init__(self, intro:str, anns:list[Annotation], footer=()):
		self._intro, self._anns, self._footer = intro, anns, footer
	def as_text(self):
		lines = [self._intro, ""]
		lines.extend(ann.illustrate() for ann in self._anns)
		lines.extend(self._footer)
		return '\n'.join(lines)

def _bemoan(issues):
	""" Emit all the issues to the console. """
	if issues:
		print("*"*60, file=sys.stderr)
		print(_outburst(), file=sys.stderr)
	for i in issues:
		print("  -"*20, file=sys.stderr)
		print(i.as_text(), file=sys.stderr)
	sys.stderr.flush()
