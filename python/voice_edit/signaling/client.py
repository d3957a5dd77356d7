"""
Signaling Client.

Exchanges the local SDP offer for the remote answer with a single HTTP
POST to the signaling relay. No retries: a failed exchange fails the whole
connection attempt and the user reconnects explicitly.
"""

import asyncio
import logging
import time

import aiohttp

from ..errors import SignalingError, TransportError
from ..metrics import get_metrics

logger = logging.getLogger("voice.signaling")


class SignalingClient:
    """One-shot offer/answer exchange against the relay."""

    def __init__(self, url: str, timeout: float = 30.0):
        """
        Initialize signaling client.

        Args:
            url: Relay endpoint accepting application/sdp
            timeout: Total exchange timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    async def exchange(self, offer_sdp: str) -> str:
        """
        Send the offer and return the answer.

        Args:
            offer_sdp: Local session description

        Returns:
            Remote session description

        Raises:
            SignalingError: relay unreachable or answered with a non-2xx status
            TransportError: exchange did not complete within the timeout
        """
        start = time.monotonic()
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    self.url,
                    data=offer_sdp,
                    headers={"Content-Type": "application/sdp"},
                ) as response:
                    body = await response.text()
                    if response.status < 200 or response.status >= 300:
                        logger.error(f"Signaling rejected: {response.status} - {body}")
                        raise SignalingError(response.status, body)
        except asyncio.TimeoutError:
            raise TransportError(f"Signaling exchange timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise SignalingError(None, str(e) or type(e).__name__)

        latency = time.monotonic() - start
        get_metrics().signaling_exchange(latency)
        logger.debug(f"Signaling exchange completed in {latency:.2f}s")
        return body
