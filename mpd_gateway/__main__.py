"""Run the gateway: ``python -m mpd_gateway --config config.yaml``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys

from . import setup
from .constants import DEFAULT_CONFIG_PATH
from .exceptions import ConfigError, ControlStartupError

logger = logging.getLogger("mpd_gateway")


async def _serve(config_path: str) -> None:
    gateway = await setup(config_path)
    await gateway.listen_and_serve()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mpd_gateway", description=__doc__)
    parser.add_argument(
        "-c",
        "--config",
        default=os.getenv("MPD_GATEWAY_CONFIG", DEFAULT_CONFIG_PATH),
        help="path to the YAML configuration file (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(_serve(args.config))
    except ConfigError as err:
        logger.error("%s", err)
        return 2
    except ControlStartupError as err:
        logger.error("Error running the MPD client startup: %s", err)
        return 1
    except OSError as err:
        logger.error("Server failed: %s", err)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
