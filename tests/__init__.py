"""hourgen test suite.

Unit tests live in tests/unit/, one module per hourgen.lib module plus
test_cli.py for the command line. Shared fakes (in-memory writer, recording
wait, fixed clock) are defined in conftest.py.
"""
