"""Allow running cwlog as ``python -m cwlog``."""

from cwlog.cli import app

app()
