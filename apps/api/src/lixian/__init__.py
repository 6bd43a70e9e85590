"""lixian - static front-end server with an aria2-backed action endpoint."""

__version__ = "0.1.0"
