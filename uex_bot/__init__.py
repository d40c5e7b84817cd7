"""UEX Discord Bot - bridges UEX Corp's marketplace API with Discord."""

__version__ = "2.0.0"
