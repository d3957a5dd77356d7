"""Tool declarations and execution."""
from .registry import ToolDefinition, ToolRegistry, ToolResult
from .edit_client import EditResponse, ImageEditClient
from .image_tools import ImageContext, create_image_tools

__all__ = [
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "EditResponse",
    "ImageEditClient",
    "ImageContext",
    "create_image_tools",
]
