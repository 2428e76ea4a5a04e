from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process or a CLI run."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # Keep per-request noise from the HTTP clients out of INFO output
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
