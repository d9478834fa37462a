"""
Main entry point for gridscan.

Runs either the grid scan effect in a desktop window or the question relay
server, selected by GRIDSCAN_ENV.
"""

import asyncio
import logging
import sys

from gridscan.core.events import EventBus
from gridscan.settings import Settings, get_settings


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    # Reduce per-frame noise
    logging.getLogger("gridscan.graphics").setLevel(max(level, logging.INFO))
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def run_effect(settings: Settings) -> None:
    """Run the effect in a pygame window."""
    from gridscan.effect.grid_scan import GridScanEffect
    from gridscan.simulator.window import SimulatorWindow, WindowConfig

    effect_settings = settings.effect
    event_bus = EventBus()

    window = SimulatorWindow(
        config=WindowConfig(
            width=effect_settings.window_width,
            height=effect_settings.window_height,
            fullscreen=effect_settings.fullscreen,
            fps=effect_settings.fps,
            pixel_ratio=effect_settings.pixel_ratio,
        ),
        event_bus=event_bus
    )

    effect = GridScanEffect(
        config=effect_settings.to_config(),
        container=window,
        event_bus=event_bus,
        render_scale=effect_settings.render_scale,
        scan_period=effect_settings.scan_period,
        scan_initial_delay=effect_settings.scan_initial_delay,
    )

    await window.run(effect)


async def run_relay(settings: Settings) -> None:
    """Run the question relay server until interrupted."""
    from gridscan.relay import RelayServer, SheetClient, load_credentials

    relay = settings.relay
    credentials = load_credentials(relay.google_creds, relay.credentials_file)

    server = RelayServer(
        sheet=SheetClient(relay.spreadsheet_id, credentials),
        poll_interval=relay.poll_interval,
        static_dir=relay.static_dir,
        host=relay.host,
        port=relay.port,
    )

    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    settings = get_settings()
    setup_logging(settings.debug)

    logger = logging.getLogger(__name__)
    logger.info(f"gridscan starting ({settings.env})...")

    try:
        if settings.is_effect:
            asyncio.run(run_effect(settings))
        elif settings.is_relay:
            asyncio.run(run_relay(settings))
        else:
            logger.error(f"Unknown environment: {settings.env}")
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("gridscan stopped")


if __name__ == "__main__":
    main()
