"""
Logging for the voice layer.

Every component logs through the ``coach_voice`` logger with its own
component tag, so one conversation's recognition restarts, queue moves and
fallback transitions read as a single timeline:

    [14:02:11.418] [ℹ️  INFO       ] [fallback    ] Mode changed (event=mode-change)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple, Union

from ..config import LOGGING_CONFIG


ROOT_LOGGER_NAME = 'coach_voice'
DEFAULT_COMPONENT = 'general'

LEVEL_WIDTH = 15
COMPONENT_WIDTH = 12

ANSI_RESET = '\033[0m'

# level name -> (ANSI color, emoji)
LEVEL_STYLES = {
    'DEBUG': ('\033[36m', '🔍'),
    'INFO': ('\033[32m', 'ℹ️ '),
    'WARNING': ('\033[33m', '⚠️ '),
    'ERROR': ('\033[31m', '❌'),
    'CRITICAL': ('\033[35m', '💀'),
}


class StructuredFormatter(logging.Formatter):
    """Renders records as ``[time] [level] [component] message (event=...)``."""

    def __init__(self, use_colors: bool = True, use_emojis: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.use_emojis = use_emojis

    def _level_label(self, levelname: str) -> str:
        color, emoji = LEVEL_STYLES.get(levelname, ('', ''))
        label = f"{emoji} {levelname}" if self.use_emojis and emoji else levelname
        label = f"{label:{LEVEL_WIDTH}}"
        # Only colorize when a terminal will interpret the codes
        if self.use_colors and color and sys.stdout.isatty():
            label = f"{color}{label}{ANSI_RESET}"
        return label

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]
        component = getattr(record, 'component', DEFAULT_COMPONENT)
        line = (
            f"[{stamp}] [{self._level_label(record.levelname)}] "
            f"[{component:{COMPONENT_WIDTH}}] {record.getMessage()}"
        )

        event = getattr(record, 'event', None)
        if event:
            line += f" (event={event})"
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


class ComponentLogger(logging.LoggerAdapter):
    """
    Adapter that stamps records with the owning component.

    Accepts an extra ``event`` keyword on every call for machine-readable
    tags such as ``low-confidence-ignored`` or ``retry-scheduled``.
    """

    def __init__(self, logger: logging.Logger, component: str):
        super().__init__(logger, {'component': component})
        self.component = component

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get('extra') or {})
        extra['component'] = self.component
        event = kwargs.pop('event', None)
        if event:
            extra['event'] = event
        kwargs['extra'] = extra
        return msg, kwargs


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    use_colors: Optional[bool] = None,
    use_emojis: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Unset arguments come from ``LOGGING_CONFIG`` (``COACH_VOICE_LOG_LEVEL``,
    ``COACH_VOICE_LOG_FILE``). Calling again replaces the previous handlers.
    The file handler never writes colors or emojis.
    """
    level = level or LOGGING_CONFIG['level']
    log_file = log_file or LOGGING_CONFIG['log_file']
    if use_colors is None:
        use_colors = LOGGING_CONFIG['use_colors']
    if use_emojis is None:
        use_emojis = LOGGING_CONFIG['use_emojis']

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter(use_colors=use_colors, use_emojis=use_emojis))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(StructuredFormatter(use_colors=False, use_emojis=False))
        logger.addHandler(file_handler)

    return logger


def get_logger(component: str) -> ComponentLogger:
    """Logger for one component, e.g. ``get_logger("recognition")``."""
    return ComponentLogger(logging.getLogger(ROOT_LOGGER_NAME), component)
