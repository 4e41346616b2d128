"""
Simulated SOS run.

Run with:
    python -m safepulse

Adds a contact, fetches and shares the location, then holds the SOS
button until the call batch goes out. Providers come from settings, so
everything is simulated unless the environment says otherwise.
"""

import asyncio

from safepulse.app import create_controller
from safepulse.core.config import settings
from safepulse.core.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


async def main() -> None:
    controller = create_controller()
    await controller.start()

    controller.add_contact("Alice", "555-1111")

    if await controller.get_location() is not None:
        batch = controller.share_location()
        if batch is not None:
            report = await batch.wait()
            logger.info("Share report: %d/%d sent", report.succeeded, report.total)

    controller.press_down()
    await asyncio.sleep(settings.hold_confirm_seconds + settings.hold_poll_interval_seconds * 2)

    if controller.last_call_batch is not None:
        logger.info("Called: %s", ", ".join(controller.last_call_batch.numbers))

    await controller.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
