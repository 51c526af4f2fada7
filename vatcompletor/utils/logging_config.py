import logging
import sys


def configure_logging(level: int = logging.INFO):
    """
    Configure logging for the application.
    The library itself never calls this, only entry points like the CLI do.
    """
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )

    # Keep our own loggers at the requested level
    logging.getLogger("vatcompletor").setLevel(level)

    # Return logger for module use if needed
    return logging.getLogger(__name__)
