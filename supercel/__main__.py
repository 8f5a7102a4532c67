"""
This evaluates one request for the supercel expression evaluator.

{0}

For example:

    py -m supercel request.json --answers answers.json

evaluates the request and prints the result as a wire value.

    py -m supercel -h

will explain all the arguments.
"""
import sys
from supercel.cmdline import parser, run

if len(sys.argv) > 1:
	exit(run(parser.parse_args()))
else:
	print(__doc__.strip().format(parser.format_usage()))
