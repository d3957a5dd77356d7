"""
Image editing tools offered to the realtime assistant.

editImage sends the current image and a prompt to the image-edit backend.
analyzeImage is a canned stub: it does not inspect pixels and always
returns the same suggestions so the assistant can keep the conversation
going.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..errors import ToolExecutionError
from .edit_client import ImageEditClient
from .registry import ToolDefinition, ToolRegistry, ToolResult

logger = logging.getLogger("voice.tools")

NO_IMAGE_ERROR = "No image available to edit"

ANALYSIS = {
    "subject": "I can see your current image and I'm ready to help edit it",
    "suggestions": [
        "I can enhance the lighting and colors",
        "I can add or remove objects from the scene",
        "I can change the background or apply artistic effects",
        "I can adjust the composition and framing",
    ],
}


@dataclass
class ImageContext:
    """The image currently shown to the user, and hooks fired when it changes."""

    image_url: Optional[str] = None
    width: int = 1024
    height: int = 768
    on_image_generated: Optional[Callable[[str, str], Any]] = None
    on_image_activated: Optional[Callable[[str], Any]] = None

    def set_image(
        self,
        image_url: Optional[str],
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        self.image_url = image_url
        if width:
            self.width = width
        if height:
            self.height = height

    def activate(self, image_url: str) -> None:
        """Switch to another existing image (the one the backend actually edited)."""
        self.image_url = image_url
        self._notify(self.on_image_activated, image_url)

    def adopt(self, image_url: str, prompt: str) -> None:
        """Make a freshly generated variant the current image."""
        self.image_url = image_url
        self._notify(self.on_image_generated, image_url, prompt)

    @staticmethod
    def _notify(hook: Optional[Callable[..., Any]], *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            logger.warning(f"Image hook failed: {e}")


def make_edit_image(context: ImageContext, client: ImageEditClient) -> ToolDefinition:
    """Build the editImage tool bound to an image context and edit client."""

    async def edit_image(arguments: Dict[str, Any]) -> ToolResult:
        source_url = context.image_url
        if not source_url:
            return ToolResult(success=False, error=NO_IMAGE_ERROR)

        prompt = arguments.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ToolExecutionError("prompt is required")

        edit_id = f"{prompt}-{source_url}-{int(time.time() * 1000)}"
        logger.info(f"Processing edit request: {edit_id}")

        try:
            response = await client.edit(
                prompt=prompt,
                image_url=source_url,
                width=context.width,
                height=context.height,
                edit_id=edit_id,
            )
        except ToolExecutionError as e:
            return ToolResult(
                success=False,
                error=str(e),
                message=f"Error editing the image: {e}",
            )

        if not response.success:
            return ToolResult(
                success=False,
                error=response.error,
                message=f"Failed to edit the image: {response.error}",
            )

        def apply_edit() -> None:
            if response.original_image_url and response.original_image_url != source_url:
                context.activate(response.original_image_url)
            context.adopt(response.image_url, prompt)

        return ToolResult(
            success=True,
            image_url=response.image_url,
            message=f'Successfully edited the image: "{prompt}"',
            on_commit=apply_edit,
        )

    return ToolDefinition(
        name="editImage",
        description="Edit the current image based on user instructions",
        example_prompt="Add a sunset background to this image",
        parameters={
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "The editing instructions for the image - be specific and detailed",
                },
            },
            "required": ["prompt"],
        },
        executor=edit_image,
    )


async def analyze_image(arguments: Dict[str, Any]) -> ToolResult:
    return ToolResult(
        success=True,
        data={"analysis": dict(ANALYSIS, suggestions=list(ANALYSIS["suggestions"]))},
        message="I've analyzed your image and I'm ready to help with any edits you'd like to make.",
    )


ANALYZE_IMAGE = ToolDefinition(
    name="analyzeImage",
    description="Analyze the current image to understand its contents and suggest improvements",
    example_prompt="Tell me about this image and suggest improvements",
    parameters={"type": "object", "properties": {}},
    executor=analyze_image,
)


def create_image_tools(context: ImageContext, client: ImageEditClient) -> ToolRegistry:
    """Registry with the editImage and analyzeImage tools."""
    return ToolRegistry([make_edit_image(context, client), ANALYZE_IMAGE])
