"""Tools the model can call during a turn."""

from .base import Tool, ToolOutcome, ToolErrorKind
from .registry import ToolRegistry
from .web_search import WebSearchTool
from .vector_search import VectorDatabaseSearchTool, VectorIndex
from .generate_image import GenerateImageTool

__all__ = [
    "Tool",
    "ToolOutcome",
    "ToolErrorKind",
    "ToolRegistry",
    "WebSearchTool",
    "VectorDatabaseSearchTool",
    "VectorIndex",
    "GenerateImageTool",
]
