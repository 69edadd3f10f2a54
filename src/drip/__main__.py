"""Allow ``python -m drip``."""

from drip.main import cli_entry

cli_entry()
