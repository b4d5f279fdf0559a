"""Explicit reporting handle passed to every resolution component.

Components never reach for a global verbosity switch; they log through the
``Reporter`` they were given.  A reporter is a thin wrapper over a standard
``logging.Logger`` that tags every message with the resolution stage.
"""

from __future__ import annotations

import logging


class Reporter:
    """Stage-tagged logging handle.

    Parameters
    ----------
    logger:
        Underlying logger.  Defaults to the ``xforge_precompiled`` logger.
    level:
        Optional minimum level applied by this handle only (app overrides
        can lower verbosity for one resolution without touching others).
    """

    def __init__(self, logger: logging.Logger | None = None, level: int | None = None) -> None:
        self._logger = logger or logging.getLogger("xforge_precompiled")
        self._level = level

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def with_level(self, level: int | None) -> Reporter:
        if level is None:
            return self
        return Reporter(self._logger, level)

    def log(self, message: str, level: int = logging.INFO, *, stage: str = "") -> None:
        if self._level is not None and level < self._level:
            return
        if stage:
            message = f"[{stage}] {message}"
        self._logger.log(level, message)

    def debug(self, message: str, *, stage: str = "") -> None:
        self.log(message, logging.DEBUG, stage=stage)

    def info(self, message: str, *, stage: str = "") -> None:
        self.log(message, logging.INFO, stage=stage)

    def warning(self, message: str, *, stage: str = "") -> None:
        self.log(message, logging.WARNING, stage=stage)

    def error(self, message: str, *, stage: str = "") -> None:
        self.log(message, logging.ERROR, stage=stage)


_CLI_HANDLER_NAME = "xforge-precompiled-cli"


def configure_logging(level: int) -> None:
    """Install a single stderr handler on the package logger (CLI entry only).

    Re-running replaces the handler so it always writes to the current
    ``sys.stderr``.
    """
    logger = logging.getLogger("xforge_precompiled")
    for existing in list(logger.handlers):
        if existing.get_name() == _CLI_HANDLER_NAME:
            logger.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.set_name(_CLI_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
