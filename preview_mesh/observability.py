"""Emit structured observability events for preview creation.

``create_preview`` reports each stage's start, completion, and failure, and
each compensating action run during rollback, as ``[event] key=value`` log
lines via femtologging.

Usage
-----
>>> events = PreviewEventLogger()
>>> events.stage_started(stage="clone-service", origin="checkout", version="42")

"""

from __future__ import annotations

import enum

from preview_mesh.logging import get_logger, log_error, log_info, log_warning

logger = get_logger(__name__)


class PreviewEventType(enum.StrEnum):
    """Structured log event types for preview creation runs."""

    STAGE_STARTED = "preview.stage.started"
    STAGE_COMPLETED = "preview.stage.completed"
    STAGE_FAILED = "preview.stage.failed"
    ROLLBACK_STEP = "preview.rollback.step"
    ROLLBACK_FAILED = "preview.rollback.failed"
    PREVIEW_CREATED = "preview.created"


class PreviewEventLogger:
    """Emit structured preview events via femtologging."""

    def stage_started(self, *, stage: str, origin: str, version: str) -> None:
        """Log the start of one creation stage."""
        log_info(
            logger,
            "[%s] stage=%s origin=%s version=%s",
            PreviewEventType.STAGE_STARTED,
            stage,
            origin,
            version,
        )

    def stage_completed(self, *, stage: str, detail: str) -> None:
        """Log a completed stage with a short description of its outcome."""
        log_info(
            logger,
            "[%s] stage=%s %s",
            PreviewEventType.STAGE_COMPLETED,
            stage,
            detail,
        )

    def stage_failed(self, *, stage: str, error: BaseException) -> None:
        """Log a failed stage with the error type and message.

        Parameters
        ----------
        stage
            Name of the stage that failed.
        error
            Exception raised by the stage.

        """
        log_error(
            logger,
            "[%s] stage=%s error_type=%s error=%s",
            PreviewEventType.STAGE_FAILED,
            stage,
            type(error).__name__,
            error,
        )

    def rollback_step(self, *, action: str) -> None:
        """Log one compensating action about to run."""
        log_warning(logger, "[%s] action=%s", PreviewEventType.ROLLBACK_STEP, action)

    def rollback_failed(self, *, action: str, error: BaseException) -> None:
        """Log a compensating action that could not be completed."""
        log_error(
            logger,
            "[%s] action=%s error_type=%s error=%s",
            PreviewEventType.ROLLBACK_FAILED,
            action,
            type(error).__name__,
            error,
        )

    def preview_created(self, *, origin: str, version: str, url: str) -> None:
        """Log the successful creation of a preview."""
        log_info(
            logger,
            "[%s] origin=%s version=%s url=%s",
            PreviewEventType.PREVIEW_CREATED,
            origin,
            version,
            url,
        )


__all__ = ["PreviewEventLogger", "PreviewEventType"]
