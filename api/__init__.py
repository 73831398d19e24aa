"""HTTP interface for chat turns."""

from .server import create_app, ChatRequest

__all__ = ["create_app", "ChatRequest"]
