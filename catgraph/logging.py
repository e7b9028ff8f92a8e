import inspect
import logging
import os
from pprint import pformat
from typing import Any

from pydantic import BaseModel

LOG_LEVEL_ENV = "CATGRAPH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(pathname)s:%(lineno)d - %(levelname)s - %(message)s"


class PprintLogger:
    """A logger wrapper that adds pprint support to standard logging methods."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, msg: Any, pprint: bool = True) -> str:
        """Format a message, optionally using pprint.

        Strings pass through untouched so %-style arguments still work. A
        Pydantic model is rendered with model_dump_json() (entities, refs,
        config); other objects go through pformat.
        """
        if not pprint or isinstance(msg, str):
            return str(msg)
        if isinstance(msg, BaseModel):
            return msg.model_dump_json(indent=2)
        return pformat(msg, width=120, depth=None)

    def _log(self, level: int, msg: Any, args: tuple, pprint: bool, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        # stacklevel 3: skip _log and the public method so records point at the caller
        self._logger.log(level, self._format_message(msg, pprint=pprint), *args, stacklevel=3, **kwargs)

    def debug(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.DEBUG, msg, args, pprint, kwargs)

    def info(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.INFO, msg, args, pprint, kwargs)

    def warning(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.WARNING, msg, args, pprint, kwargs)

    def error(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def exception(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def __getattr__(self, name: str) -> Any:
        """Delegate any other attributes to the underlying logger."""
        return getattr(self._logger, name)


def resolve_level(level: int | str | None = None) -> int:
    """Turn a level name or number into a logging level.

    ``None`` reads CATGRAPH_LOG_LEVEL and falls back to WARNING, also when
    the variable holds an unknown name. An explicit unknown name raises
    ValueError.
    """
    if level is None:
        env_level = os.environ.get(LOG_LEVEL_ENV)
        if not env_level:
            return logging.WARNING
        try:
            return resolve_level(env_level)
        except ValueError:
            logging.getLogger(__name__).warning(
                "Ignoring %s=%r: not a log level, using WARNING", LOG_LEVEL_ENV, env_level
            )
            return logging.WARNING
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def setup_logging(level: int | str | None = None, name: str | None = None) -> PprintLogger:
    """Set up logging and return a PprintLogger instance.

    The logger is named after the calling module unless ``name`` is given.
    Handler and level live on the top-level ``catgraph`` logger, so every
    module logger shares one stream handler and one level.
    """
    if name is None:
        frame = inspect.currentframe().f_back  # type: ignore[union-attr]
        name = frame.f_globals.get("__name__", "catgraph")  # type: ignore[union-attr]
    root = logging.getLogger(name.split(".", 1)[0])
    root.setLevel(resolve_level(level))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return PprintLogger(logging.getLogger(name))
