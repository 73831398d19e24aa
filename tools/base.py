"""Tool contract shared by every collaborator the model can call."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Type
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ToolErrorKind(str, Enum):
    """Why a tool call produced an error instead of output."""
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    EXECUTION_FAILED = "execution_failed"


class ToolOutcome(BaseModel):
    """Result of one tool call; failures are data, never exceptions."""
    call_id: str
    tool_name: str
    output: Any = None
    error: Optional[str] = None
    error_kind: Optional[ToolErrorKind] = None

    @property
    def success(self) -> bool:
        return self.error is None


class Tool(ABC):
    """Abstract base class for tools."""
    name: str
    description: str
    input_model: Type[BaseModel]

    @abstractmethod
    def execute(self, args: BaseModel) -> Any:
        """
        Execute the tool with validated arguments.

        Returning a dict with an "error" key, or raising, marks the call as
        an execution failure.
        """
        pass

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool input, derived from input_model."""
        return self.input_model.model_json_schema()

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }
