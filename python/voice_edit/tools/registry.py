"""
Tool Registry.

Declares the capabilities advertised to the realtime assistant and runs
their local executors. Executors are async callables taking the decoded
function-call arguments and returning a ToolResult.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger("voice.tools")


@dataclass
class ToolResult:
    """Outcome of a tool execution, serialized as the function_call_output."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    image_url: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    # Local side effects applied only once the result is accepted
    on_commit: Optional[Callable[[], None]] = field(default=None, repr=False, compare=False)

    def commit(self) -> None:
        """Apply the deferred side effects, at most once."""
        callback, self.on_commit = self.on_commit, None
        if callback is not None:
            callback()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {"success": self.success}
        if self.image_url is not None:
            result["imageUrl"] = self.image_url
        if self.error is not None:
            result["error"] = self.error
        result.update(self.data)
        if self.message is not None:
            result["message"] = self.message
        return result


Executor = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """Static description of one invocable tool."""

    name: str
    description: str
    parameters: Dict[str, Any]
    executor: Executor
    example_prompt: Optional[str] = None

    def schema(self) -> Dict[str, Any]:
        """Function schema as advertised in session.update."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolRegistry:
    """Lookup table of declared tools."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    def list(self) -> List[ToolDefinition]:
        """All declared tools in declaration order."""
        return list(self._tools.values())

    def schemas(self) -> List[Dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    async def execute(self, name: str, arguments: Any) -> Optional[ToolResult]:
        """
        Run a tool's executor.

        Args:
            name: Tool name from the function call
            arguments: Decoded arguments object

        Returns:
            The tool's result, a failure result if the executor raised, or
            None if no tool with that name is declared.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {name}")
            return None

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            error = f"Arguments for {name} must be an object"
            return ToolResult(success=False, error=error, message=f"Failed to run {name}: {error}")

        try:
            return await tool.executor(arguments)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error(f"Tool '{name}' failed: {error}", exc_info=e)
            return ToolResult(
                success=False,
                error=error,
                message=f"Failed to run {name}: {error}",
            )
