"""Douban search command for blockmeta CLI."""

import asyncio

from ...core.config import Config
from ...services import ServiceContainer


def handle_search(args, config: Config) -> None:
    """Print Douban book subject URLs for a keyword.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_search_async(args, config))


async def _handle_search_async(args, config: Config) -> None:
    async with ServiceContainer(config) as services:
        urls = await services.search.subject_urls(args.keyword)

    if not urls:
        print(f"No books found for '{args.keyword}'")
        return
    for url in urls[: args.limit]:
        print(url)
