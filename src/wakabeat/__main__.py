"""Entry point: python -m wakabeat"""

import json
import logging
import os
import sys
from pathlib import Path

from wakabeat.core.config import WakabeatConfig
from wakabeat.core.daemon import WakabeatDaemon

_STRUCTURED_FIELDS = ('event', 'outcome', 'status', 'entity', 'rollback')


class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured extra fields as JSON when present."""
    def format(self, record):
        base = super().format(record)
        event = getattr(record, 'event', None)
        if event:
            extras = {k: v for k, v in record.__dict__.items() if k in _STRUCTURED_FIELDS}
            base += f" | {json.dumps(extras, default=str)}"
        return base


def setup_logging(config: WakabeatConfig):
    """Configure logging with file + console handlers."""
    fmt = StructuredFormatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = []
    if config.logging.file:
        log_path = Path(config.logging.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(fmt)
        handlers.append(file_handler)

    # Only add console handler if stdout is a TTY (avoid duplicates when nohup redirects to file)
    if sys.stdout.isatty() or not handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(fmt)
        handlers.append(console_handler)

    level_name = os.environ.get("WAKABEAT_LOG_LEVEL", config.logging.level)
    if config.plugin.debug:
        level_name = "DEBUG"

    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )


def main():
    config = WakabeatConfig.load()
    setup_logging(config)
    daemon = WakabeatDaemon(config=config)
    daemon.run()


if __name__ == "__main__":
    main()
