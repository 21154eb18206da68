import asyncio
import logging

from storefront.config import settings
from storefront.context import create_context
from storefront.utils.logging import configure_logging

configure_logging(settings)
logger = logging.getLogger(__name__)


async def run(page_path: str = "/", referrer: str | None = None) -> None:
    """Boot a storefront context, warm the string cache and record the page view."""
    async with create_context() as context:
        loaded = await context.preload_strings()
        logger.info("Bundles ready: %s", ", ".join(loaded) or "none")
        context.tracker.track_page_view(page_path, referrer)

        if settings.debug:
            logger.info("Running in %s mode", settings.environment)


if __name__ == "__main__":
    asyncio.run(run())
