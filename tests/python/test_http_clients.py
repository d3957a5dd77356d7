"""Tests for the signaling client, the signaling relay and the edit client."""

import os
import sys
import asyncio
import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_edit.config import VoiceConfig
from voice_edit.errors import SignalingError, ToolExecutionError, TransportError
from voice_edit.signaling import SignalingClient, SignalingRelay
from voice_edit.tools import ImageEditClient


async def start_server(routes):
    app = web.Application()
    for method, path, handler in routes:
        app.router.add_route(method, path, handler)
    server = TestServer(app)
    await server.start_server()
    return server


class TestSignalingClient:
    """Test SignalingClient.exchange()."""

    @pytest.mark.asyncio
    async def test_exchange_returns_answer(self):
        received = {}

        async def handler(request):
            received["content_type"] = request.content_type
            received["body"] = await request.text()
            return web.Response(text="v=0 answer", content_type="application/sdp")

        server = await start_server([("POST", "/api/rtc-connect", handler)])
        try:
            client = SignalingClient(str(server.make_url("/api/rtc-connect")))
            answer = await client.exchange("v=0 offer")
        finally:
            await server.close()

        assert answer == "v=0 answer"
        assert received == {"content_type": "application/sdp", "body": "v=0 offer"}

    @pytest.mark.asyncio
    async def test_non_2xx_raises_signaling_error(self):
        async def handler(request):
            return web.Response(text="OpenAI API key not configured", status=500)

        server = await start_server([("POST", "/api/rtc-connect", handler)])
        try:
            client = SignalingClient(str(server.make_url("/api/rtc-connect")))
            with pytest.raises(SignalingError) as exc_info:
                await client.exchange("v=0 offer")
        finally:
            await server.close()

        assert exc_info.value.status == 500
        assert str(exc_info.value) == (
            "Failed to connect to realtime API: 500 - OpenAI API key not configured"
        )

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self):
        async def handler(request):
            await asyncio.sleep(1)
            return web.Response(text="late")

        server = await start_server([("POST", "/api/rtc-connect", handler)])
        try:
            client = SignalingClient(str(server.make_url("/api/rtc-connect")), timeout=0.05)
            with pytest.raises(TransportError):
                await client.exchange("v=0 offer")
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_unreachable_raises_signaling_error(self):
        client = SignalingClient("http://127.0.0.1:1/api/rtc-connect", timeout=2.0)
        with pytest.raises(SignalingError) as exc_info:
            await client.exchange("v=0 offer")
        assert exc_info.value.status is None


class TestSignalingRelay:
    """Test the SignalingRelay HTTP server."""

    @pytest.mark.asyncio
    async def test_health_live(self):
        relay = SignalingRelay(VoiceConfig(openai_api_key=None))
        async with TestClient(TestServer(relay.create_app())) as client:
            response = await client.get("/health/live")
            assert response.status == 200
            assert await response.text() == "OK"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        relay = SignalingRelay(VoiceConfig(openai_api_key=None))
        async with TestClient(TestServer(relay.create_app())) as client:
            response = await client.post("/api/rtc-connect", data="v=0 offer")
            assert response.status == 500
            assert await response.text() == "OpenAI API key not configured"

    @pytest.mark.asyncio
    async def test_forwards_offer_upstream(self):
        upstream_seen = {}

        async def realtime(request):
            upstream_seen["auth"] = request.headers.get("Authorization")
            upstream_seen["model"] = request.query.get("model")
            upstream_seen["voice"] = request.query.get("voice")
            upstream_seen["body"] = await request.text()
            return web.Response(text="v=0 upstream answer")

        upstream = await start_server([("POST", "/v1/realtime", realtime)])
        try:
            config = VoiceConfig(
                openai_api_key="sk-test",
                realtime_url=str(upstream.make_url("/v1/realtime")),
                realtime_model="test-model",
                realtime_voice="ash",
            )
            relay = SignalingRelay(config)
            async with TestClient(TestServer(relay.create_app())) as client:
                response = await client.post("/api/rtc-connect", data="v=0 offer")
                assert response.status == 200
                assert response.content_type == "application/sdp"
                assert await response.text() == "v=0 upstream answer"
        finally:
            await upstream.close()

        assert upstream_seen == {
            "auth": "Bearer sk-test",
            "model": "test-model",
            "voice": "ash",
            "body": "v=0 offer",
        }

    @pytest.mark.asyncio
    async def test_upstream_error_status_relayed(self):
        async def realtime(request):
            return web.Response(text="bad key", status=401)

        upstream = await start_server([("POST", "/v1/realtime", realtime)])
        try:
            config = VoiceConfig(
                openai_api_key="sk-bad",
                realtime_url=str(upstream.make_url("/v1/realtime")),
            )
            async with TestClient(TestServer(SignalingRelay(config).create_app())) as client:
                response = await client.post("/api/rtc-connect", data="v=0 offer")
                assert response.status == 401
                assert await response.text() == "OpenAI API error: 401 - bad key"
        finally:
            await upstream.close()

    @pytest.mark.asyncio
    async def test_upstream_unreachable(self):
        config = VoiceConfig(
            openai_api_key="sk-test",
            realtime_url="http://127.0.0.1:1/v1/realtime",
        )
        async with TestClient(TestServer(SignalingRelay(config).create_app())) as client:
            response = await client.post("/api/rtc-connect", data="v=0 offer")
            assert response.status == 500
            assert await response.text() == "Internal server error"


class TestImageEditClient:
    """Test ImageEditClient.edit()."""

    @pytest.mark.asyncio
    async def test_edit_success(self):
        received = {}

        async def handler(request):
            received.update(await request.json())
            return web.json_response({
                "success": True,
                "imageUrl": "https://img/edited.png",
                "originalImageUrl": "https://img/original.png",
            })

        server = await start_server([("POST", "/api/voice-edit", handler)])
        try:
            client = ImageEditClient(str(server.make_url("/api/voice-edit")), provider="modelscope")
            response = await client.edit("add a hat", "https://img/original.png", 512, 512, edit_id="e1")
        finally:
            await server.close()

        assert response.success
        assert response.image_url == "https://img/edited.png"
        assert response.original_image_url == "https://img/original.png"
        assert received == {
            "prompt": "add a hat",
            "imageUrl": "https://img/original.png",
            "width": 512,
            "height": 512,
            "provider": "modelscope",
            "editId": "e1",
        }

    @pytest.mark.asyncio
    async def test_edit_backend_error(self):
        async def handler(request):
            return web.json_response({"success": False, "error": "No image URL provided"}, status=400)

        server = await start_server([("POST", "/api/voice-edit", handler)])
        try:
            client = ImageEditClient(str(server.make_url("/api/voice-edit")))
            response = await client.edit("add a hat", "https://img/a.png", 1024, 768)
        finally:
            await server.close()

        assert not response.success
        assert response.error == "No image URL provided"

    @pytest.mark.asyncio
    async def test_success_without_url_is_failure(self):
        async def handler(request):
            return web.json_response({"success": True})

        server = await start_server([("POST", "/api/voice-edit", handler)])
        try:
            client = ImageEditClient(str(server.make_url("/api/voice-edit")))
            response = await client.edit("x", "https://img/a.png", 1024, 768)
        finally:
            await server.close()

        assert not response.success
        assert response.error == "Image edit returned no image URL"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async def handler(request):
            return web.Response(text="<html>Bad Gateway</html>", status=502)

        server = await start_server([("POST", "/api/voice-edit", handler)])
        try:
            client = ImageEditClient(str(server.make_url("/api/voice-edit")))
            with pytest.raises(ToolExecutionError, match="status 502"):
                await client.edit("x", "https://img/a.png", 1024, 768)
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def handler(request):
            await asyncio.sleep(1)
            return web.json_response({"success": True, "imageUrl": "late"})

        server = await start_server([("POST", "/api/voice-edit", handler)])
        try:
            client = ImageEditClient(str(server.make_url("/api/voice-edit")), timeout=0.05)
            with pytest.raises(ToolExecutionError, match="timed out"):
                await client.edit("x", "https://img/a.png", 1024, 768)
        finally:
            await server.close()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
