"""ably-cli - watch an Ably channel from the terminal."""

__version__ = "0.1.0"
