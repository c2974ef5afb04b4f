"""Extract command for blockmeta CLI.

- `blockmeta extract URL`: print the extracted properties as JSON
- `blockmeta extract URL --apply`: also run the block update against an
  in-memory block and print the resulting block and tag schema
"""

import asyncio

from ...core.config import Config
from ...core.types import ContentItem
from ...services import ServiceContainer
from ._output import print_json


def add_extract_arguments(parser) -> None:
    """Add arguments for the extract command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument("url", help="Page URL to extract metadata from")
    parser.add_argument(
        "--no-assets",
        action="store_true",
        help="Do not upload cover images",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply the result to an in-memory block and show it",
    )


def handle_extract(args, config: Config) -> None:
    """Handle extract command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_extract_async(args, config))


async def _handle_extract_async(args, config: Config) -> None:
    async with ServiceContainer(config) as services:
        if not args.apply:
            result = await services.pipeline.extract(
                args.url, resolve_assets=not args.no_assets
            )
            print_json(result.to_dict())
            return

        host = services.host
        block = host.add_block([ContentItem(t="a", v=args.url, url=args.url)])
        outcome = await services.pipeline.extract_into_block(block.id)
        if not outcome.success:
            raise RuntimeError(outcome.message)

        stored = await host.get_block(block.id)
        print_json(
            {
                "message": outcome.message,
                "block": {
                    "id": stored.id,
                    "content": [item.to_dict() for item in stored.content],
                },
                "result": outcome.result.to_dict(),
                "schema": [prop.to_dict() for prop in host.tag_schema(outcome.result.rule.tag_name)],
                "assets": [
                    {"original": r.original, "value": r.value, "resolved": r.resolved, "error": r.error}
                    for r in outcome.resolutions
                ],
            }
        )
