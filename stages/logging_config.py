"""Logging setup for the command pipeline.

Console logging for interactive runs, with an optional rotating log file for
unattended runs on the robot.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

from config import PipelineConfig

_HANDLER_NAME = 'pillar-vision'


def setup_logging(level: Union[str, int, None] = None,
                  log_file: Optional[Union[str, Path]] = None,
                  config: dict = None) -> logging.Logger:
    """Configure the root logger once.

    Args:
        level: Log level name or number (defaults to the configured level)
        log_file: Optional path for a rotating file handler
        config: Optional config dict, uses PipelineConfig.LOGGING if None

    Returns:
        The configured root logger
    """
    config = config or PipelineConfig.LOGGING
    level = level or config['LEVEL']
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    log_file = log_file or config.get('FILE')

    root = logging.getLogger()
    root.setLevel(level)

    # Re-running replaces our handlers instead of stacking duplicates
    for handler in list(root.handlers):
        if getattr(handler, 'name', None) and handler.name.startswith(_HANDLER_NAME):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config['FORMAT'])

    console = logging.StreamHandler(sys.stderr)
    console.set_name(f'{_HANDLER_NAME}-console')
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=config['MAX_BYTES'],
            backupCount=config['BACKUP_COUNT'],
            encoding='utf-8'
        )
        file_handler.set_name(f'{_HANDLER_NAME}-file')
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger('serial').setLevel(logging.WARNING)

    return root
