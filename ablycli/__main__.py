"""Allow ``python -m ablycli``."""

from .main import app

app()
