"""Main entry point for the Pacemaker primitive operator.

Runs one reconciliation pass over every primitive declared in SPEC_FILE,
executing each primitive's actions in order. Primitives are independent: a
failure on one is logged and the remaining primitives are still reconciled.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TextIO

from .config import Config, ConfigurationError
from .controller import ReconciliationController
from .errors import PrimitiveError
from .models import ReconciliationResult, ResourceSpec
from .spec_loader import SpecLoadError, load_specs
from .transport import CrmShellTransport

# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> None:
    """Configure structured logging with JSON output (stdout unless ``stream``)."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing.formatter, JsonFormatter):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def log_result(result: ReconciliationResult) -> None:
    """Emit one summary line for a reconciliation result."""
    logger = logging.getLogger(__name__)
    extra = {
        "resource": result.name,
        "action": result.action.value,
        "changed": result.changed,
        "commands_applied": len(result.commands_applied),
        "commands_planned": len(result.commands_planned),
        "duration_seconds": result.duration_seconds,
    }
    if result.success:
        logger.info("Reconciliation complete", extra=extra)
    else:
        logger.error(
            "Reconciliation failed",
            extra={**extra, "failure_reason": result.failure_reason},
        )


def reconcile_all(
    controller: ReconciliationController, specs: Sequence[ResourceSpec]
) -> list[ReconciliationResult]:
    """Run every declared action for every spec.

    An action that raises or fails stops the remaining actions for that
    primitive only.
    """
    logger = logging.getLogger(__name__)
    results: list[ReconciliationResult] = []

    for spec in specs:
        for action in spec.actions:
            try:
                result = controller.reconcile(spec, action)
            except PrimitiveError as e:
                logger.error(
                    "Reconciliation refused",
                    extra={
                        "resource": spec.name,
                        "action": action.value,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                result = ReconciliationResult(
                    name=spec.name,
                    action=action,
                    failure_reason=str(e),
                    error=e,
                    end_time=datetime.now(UTC),
                )
            log_result(result)
            results.append(result)
            if not result.success:
                break

    return results


def main() -> int:
    """Run the operator once.

    Returns:
        Exit code (0 for success, 1 for configuration or declaration errors,
        3 if any primitive failed to reconcile).
    """
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return 1

    logging.getLogger().setLevel(config.log_level_number)

    if config.spec_file is None:
        logger.error("Configuration error", extra={"error": "SPEC_FILE is required"})
        return 1

    try:
        specs = load_specs(config.spec_file)
    except SpecLoadError as e:
        logger.error(
            "Spec loading failed",
            extra={"error": str(e), "spec_file": str(config.spec_file)},
        )
        return 1

    logger.info(
        "Starting Pacemaker primitive operator",
        extra={
            "spec_file": str(config.spec_file),
            "primitives": len(specs),
            "dry_run": config.dry_run,
        },
    )

    controller = ReconciliationController(CrmShellTransport(config), config)
    results = reconcile_all(controller, specs)

    failed = [r for r in results if not r.success]
    logger.info(
        "Operator run finished",
        extra={
            "changed": sum(1 for r in results if r.changed),
            "failed": len(failed),
        },
    )
    return 3 if failed else 0


def run() -> None:
    """Entry point for the operator."""
    sys.exit(main())


if __name__ == "__main__":
    run()
