"""
Signaling Relay HTTP Server.

Server side of the offer/answer exchange. Keeps the realtime provider key
off the client:
- POST /api/rtc-connect - forwards the SDP offer to the realtime API and
  returns its SDP answer
- GET /health/live - liveness check
"""

import logging
from typing import Optional

import aiohttp
from aiohttp import web

from ..config import VoiceConfig, get_config

logger = logging.getLogger("voice.relay")

SDP_CONTENT_TYPE = "application/sdp"


class SignalingRelay:
    """HTTP relay between voice clients and the realtime provider."""

    def __init__(self, config: Optional[VoiceConfig] = None):
        self.config = config or get_config()
        self._runner: Optional[web.AppRunner] = None
        self._started = False

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/rtc-connect", self._connect_handler)
        app.router.add_get("/health/live", self._live_handler)
        return app

    async def _live_handler(self, request: web.Request) -> web.Response:
        return web.Response(text="OK", status=200)

    async def _connect_handler(self, request: web.Request) -> web.Response:
        """Forward the offer upstream and relay the answer."""
        api_key = self.config.openai_api_key
        if not api_key:
            return web.Response(text="OpenAI API key not configured", status=500)

        try:
            offer = await request.text()
            params = {
                "model": self.config.realtime_model,
                "instructions": self.config.relay_instructions,
                "voice": self.config.realtime_voice,
            }
            headers = {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": SDP_CONTENT_TYPE,
            }
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.config.realtime_url,
                    params=params,
                    data=offer,
                    headers=headers,
                ) as upstream:
                    body = await upstream.text()
                    if upstream.status < 200 or upstream.status >= 300:
                        logger.error(f"OpenAI API error: {body}")
                        return web.Response(
                            text=f"OpenAI API error: {upstream.status} - {body}",
                            status=upstream.status,
                        )
        except Exception as e:
            logger.error(f"RTC connection error: {e}")
            return web.Response(text="Internal server error", status=500)

        return web.Response(text=body, content_type=SDP_CONTENT_TYPE)

    async def start(self) -> None:
        """Start the relay HTTP server."""
        if self._started:
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.config.relay_host, self.config.relay_port)
        await site.start()

        self._started = True
        logger.info(
            f"Signaling relay started on {self.config.relay_host}:{self.config.relay_port}"
        )

    async def stop(self) -> None:
        """Stop the relay HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        self._started = False
        logger.info("Signaling relay stopped")
