"""
Image Edit Client.

Posts edit requests to the image-edit backend route, which forwards them
to the configured generator (Fal.ai or ModelScope) and answers with the
URL of the edited variant.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..errors import ToolExecutionError

logger = logging.getLogger("voice.edit_client")


@dataclass
class EditResponse:
    """Parsed response of the image-edit backend."""

    success: bool
    image_url: Optional[str] = None
    original_image_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "EditResponse":
        success = bool(body.get("success"))
        error = body.get("error")
        if success and not body.get("imageUrl"):
            success = False
            error = "Image edit returned no image URL"
        elif not success and not error:
            error = "Unknown error"
        return cls(
            success=success,
            image_url=body.get("imageUrl"),
            original_image_url=body.get("originalImageUrl"),
            error=error,
        )


class ImageEditClient:
    """HTTP client for the image-edit backend."""

    def __init__(
        self,
        url: str,
        provider: str = "fal",
        timeout: float = 300.0,
    ):
        """
        Initialize the edit client.

        Args:
            url: Image edit endpoint
            provider: Generator backend ('fal' or 'modelscope')
            timeout: Total request timeout in seconds
        """
        self.url = url
        self.provider = provider
        self.timeout = timeout

    async def edit(
        self,
        prompt: str,
        image_url: str,
        width: int,
        height: int,
        edit_id: Optional[str] = None,
    ) -> EditResponse:
        """
        Request an edited variant of an image.

        Returns:
            EditResponse with success or the backend's error string

        Raises:
            ToolExecutionError: on network failure, timeout or a body that is
                not a JSON object
        """
        payload: Dict[str, Any] = {
            "prompt": prompt,
            "imageUrl": image_url,
            "width": width,
            "height": height,
            "provider": self.provider,
        }
        if edit_id:
            payload["editId"] = edit_id

        logger.info(f"Requesting edit: '{prompt[:50]}' ({width}x{height}, {self.provider})")

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        raise ToolExecutionError(
                            f"Image edit failed with status {response.status}"
                        )
        except asyncio.TimeoutError:
            raise ToolExecutionError(f"Image edit timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise ToolExecutionError(str(e) or type(e).__name__)

        if not isinstance(body, dict):
            raise ToolExecutionError("Image edit returned an unexpected response")

        result = EditResponse.from_dict(body)
        if result.success:
            logger.info(f"Edit complete: {result.image_url}")
        else:
            logger.warning(f"Edit failed: {result.error}")
        return result
