"""Process entry point — prints the banner and starts the polling loop."""

from config import BOT_TOKEN
from core.logger import BaleLogger
from bot.dispatcher import run

logger = BaleLogger.get_logger()

BANNER = r"""
 ____    _    _     _____   ____   ___ _____
| __ )  / \  | |   | ____| | __ ) / _ \_   _|
|  _ \ / _ \ | |   |  _|   |  _ \| | | || |
| |_) / ___ \| |___| |___  | |_) | |_| || |
|____/_/   \_\_____|_____| |____/ \___/ |_|
"""


def get_info() -> str:
    """Return the startup banner."""
    return BANNER


def main() -> None:
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    print(get_info())
    try:
        run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
