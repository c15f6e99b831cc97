"""femtologging setup and percent-style log helpers for preview commands.

Every module logs through a module-level ``logger = get_logger(__name__)``
and the ``log_*`` helpers below, which interpolate arguments eagerly and pass
a finished message to femtologging.

>>> from preview_mesh.logging import get_logger, log_info
>>> log_info(get_logger("preview_mesh.docs"), "Created %s", "pr42-checkout")

"""

from __future__ import annotations

import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LOG_LEVEL = "INFO"

# Level names femtologging accepts.
LOG_LEVELS = frozenset(
    {"TRACE", "DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"}
)


class LevelChoice(typ.NamedTuple):
    """Resolved log level and whether the requested one was replaced."""

    level: str
    fallback: bool


class _Logger(typ.Protocol):
    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def normalize_log_level(level: str | None) -> LevelChoice:
    """Resolve a ``--log-level`` value.

    Names are matched case-insensitively. Missing or unknown names resolve to
    ``INFO`` with ``fallback`` set so the caller can warn about them.
    """
    candidate = (level or "").strip().upper()
    if candidate in LOG_LEVELS:
        return LevelChoice(candidate, fallback=False)
    return LevelChoice(DEFAULT_LOG_LEVEL, fallback=True)


def configure_logging(level: str | None, *, force: bool = False) -> LevelChoice:
    """Install femtologging's default handler at the resolved level.

    Parameters
    ----------
    level : str | None
        Requested level name.
    force : bool, default False
        Replace handlers installed by an earlier call.

    Returns
    -------
    LevelChoice
        The level actually configured.

    """
    choice = normalize_log_level(level)
    basicConfig(level=choice.level, force=force)
    return choice


def _emit(
    logger: _Logger,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None = None,
) -> None:
    message = template % args if args else template
    logger.log(level, message, exc_info=exc_info, stack_info=False)


def log_debug(logger: _Logger, template: str, *args: object) -> None:
    """Log at DEBUG."""
    _emit(logger, "DEBUG", template, args)


def log_info(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at INFO."""
    _emit(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at WARNING, optionally attaching an exception."""
    _emit(logger, "WARNING", template, args, exc_info)


def log_error(
    logger: _Logger, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at ERROR, optionally attaching an exception."""
    _emit(logger, "ERROR", template, args, exc_info)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LOG_LEVELS",
    "LevelChoice",
    "configure_logging",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
