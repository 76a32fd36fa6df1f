"""Allow `python -m macbackup`."""

from .cli import app

app()
