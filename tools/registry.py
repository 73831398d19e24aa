"""Tool registry: validation, dispatch and error mapping."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from pydantic import ValidationError

from llm.base_client import ToolCall
from .base import Tool, ToolErrorKind, ToolOutcome

logger = logging.getLogger(__name__)


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        location = ".".join(str(loc) for loc in err["loc"]) or "input"
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """
    Holds the tools offered to the model and invokes them.

    Every invocation returns a ToolOutcome. Unknown tools, argument
    validation failures and execution failures are reported as distinct
    error kinds so a failing tool never ends the turn.
    """

    def __init__(self, tools: Optional[List[Tool]] = None, max_workers: int = 4):
        """
        Initialize registry.

        Args:
            tools: Tools to register
            max_workers: Thread pool size when calls run in parallel
        """
        self.tools: Dict[str, Tool] = {}
        self.max_workers = max_workers
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool):
        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self.tools[tool.name] = tool

    def __len__(self) -> int:
        return len(self.tools)

    def __contains__(self, name: str) -> bool:
        return name in self.tools

    def definitions(self) -> List[Dict]:
        """OpenAI-compatible definitions for every registered tool."""
        return [tool.get_definition() for tool in self.tools.values()]

    def invoke(self, call: ToolCall) -> ToolOutcome:
        """
        Validate arguments and execute a single tool call.

        Args:
            call: Tool call requested by the model

        Returns:
            ToolOutcome with either output or a typed error
        """
        tool = self.tools.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool '{call.name}'")
            return ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                error=f"Unknown tool '{call.name}'",
                error_kind=ToolErrorKind.UNKNOWN_TOOL
            )

        try:
            args = tool.input_model.model_validate(call.arguments)
        except ValidationError as e:
            message = _describe_validation_error(e)
            logger.warning(f"Invalid arguments for {call.name}: {message}")
            return ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                error=f"Invalid arguments: {message}",
                error_kind=ToolErrorKind.INVALID_ARGUMENTS
            )

        try:
            output = tool.execute(args)
        except Exception as e:
            logger.error(f"{call.name} tool error: {e}")
            return ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                error=str(e) or e.__class__.__name__,
                error_kind=ToolErrorKind.EXECUTION_FAILED
            )

        if isinstance(output, dict) and output.get("error"):
            return ToolOutcome(
                call_id=call.id,
                tool_name=call.name,
                error=str(output["error"]),
                error_kind=ToolErrorKind.EXECUTION_FAILED
            )

        logger.info(f"Tool {call.name} completed ({call.id})")
        return ToolOutcome(call_id=call.id, tool_name=call.name, output=output)

    def invoke_all(self, calls: List[ToolCall], sequential: bool = True) -> List[ToolOutcome]:
        """
        Invoke the tool calls of one step.

        Args:
            calls: Tool calls in the order the model produced them
            sequential: Run one at a time instead of on a thread pool

        Returns:
            Outcomes in the same order as calls
        """
        if sequential or len(calls) < 2:
            return [self.invoke(call) for call in calls]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(calls))) as pool:
            return list(pool.map(self.invoke, calls))
