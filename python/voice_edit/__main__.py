"""
Voice Edit entry point.

Usage:
    python -m voice_edit session --image-url URL [--width 1024] [--height 768]
    python -m voice_edit relay [--port 8787]

Environment Variables:
    VOICE_RELAY_URL - Signaling relay endpoint
    VOICE_EDIT_URL - Image edit endpoint
    OPENAI_API_KEY - Realtime provider key (relay only)
    VOICE_METRICS_PORT - Prometheus port (0 disables)
    VOICE_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR)
"""

import argparse
import asyncio
import signal

from .config import get_config, get_logger
from .controller import VoiceSessionController
from .core import SessionStatus
from .metrics import MetricsCollector
from .signaling import SignalingRelay

logger = get_logger("cli")


def _wait_for_shutdown() -> asyncio.Event:
    """Event set on SIGINT/SIGTERM."""
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown requested...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler())

    return shutdown_event


async def run_session(args: argparse.Namespace) -> None:
    """Run one headless voice session until interrupted."""
    config = get_config()
    controller = VoiceSessionController(config=config)
    controller.image.set_image(args.image_url, args.width, args.height)
    controller.image.on_image_generated = lambda url, prompt: logger.info(
        f"New image for '{prompt}': {url}"
    )

    def on_status(status: SessionStatus) -> None:
        logger.info(
            f"[{status.connection_state.value}] {status.activity_state.value}"
            f" - {status.status_message}"
        )

    controller.subscribe(on_status)
    shutdown_event = _wait_for_shutdown()

    for tool in controller.registry.list():
        if tool.example_prompt:
            logger.info(f'Try {tool.name}: "{tool.example_prompt}"')

    try:
        async with controller:
            if args.mute:
                controller.toggle_mute(True)
            await shutdown_event.wait()
    finally:
        pending = controller.tasks.get_active_tasks()
        if pending:
            logger.info(f"Cancelling in-flight tasks: {', '.join(sorted(pending))}")
        await controller.tasks.shutdown()


async def run_relay(args: argparse.Namespace) -> None:
    """Serve the signaling relay until interrupted."""
    config = get_config()
    if args.port:
        config.relay_port = args.port
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; offers will be rejected.")

    relay = SignalingRelay(config)
    shutdown_event = _wait_for_shutdown()

    await relay.start()
    try:
        await shutdown_event.wait()
    finally:
        await relay.stop()


def main():
    parser = argparse.ArgumentParser(
        description="Realtime voice commands for AI image editing"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    session = subparsers.add_parser("session", help="Run a voice session")
    session.add_argument("--image-url", required=True, help="Image to edit")
    session.add_argument("--width", type=int, default=None, help="Image width (default: 1024)")
    session.add_argument("--height", type=int, default=None, help="Image height (default: 768)")
    session.add_argument("--mute", action="store_true", help="Mute assistant audio output")

    relay = subparsers.add_parser("relay", help="Run the signaling relay")
    relay.add_argument("--port", type=int, default=None, help="Listen port (default: 8787)")

    args = parser.parse_args()

    config = get_config()
    if config.metrics_port:
        MetricsCollector(port=config.metrics_port).start()

    if args.command == "session":
        asyncio.run(run_session(args))
    else:
        asyncio.run(run_relay(args))


if __name__ == "__main__":
    main()
