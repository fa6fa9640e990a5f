"""Logging setup and structured log helpers for the analysis service.

All module loggers live under the ``app`` package logger, so one stdout
handler configured here covers the engine, the classifiers and the API.
Helpers emit ``KEY value key=value`` lines that are easy to grep per tenant.
"""

import logging
import os
import sys
from typing import Any

LOGGER_NAME = "app"


def _kv(**fields: Any) -> str:
    return " ".join(f"{k}={v}" for k, v in fields.items() if v is not None)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach the stdout handler to the package logger (idempotent)."""
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if root.handlers:
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    return root


# Settings may be invalid at import time; the level comes straight from the env
logger = setup_logging(os.environ.get("LOG_LEVEL", "INFO"))


def log_request(method: str, path: str, **kwargs: Any) -> None:
    logger.info(f"REQUEST {method} {path} {_kv(**kwargs)}".strip())


def log_response(method: str, path: str, status: int, duration_ms: float) -> None:
    logger.info(f"RESPONSE {method} {path} status={status} duration_ms={duration_ms:.2f}")


def log_error(message: str, exc: Exception | None = None, **kwargs: Any) -> None:
    """Log an error; the traceback is attached when an exception is given."""
    logger.error(f"ERROR {message} {_kv(**kwargs)}".strip(), exc_info=exc)


def log_db_query(
    operation: str,
    table: str,
    duration_ms: float | None = None,
    tenant_id: str | None = None,
) -> None:
    duration = f"{duration_ms:.2f}" if duration_ms else None
    logger.debug(
        f"DB {operation} {_kv(table=table, tenant=tenant_id, duration_ms=duration)}"
    )


def log_external_call(
    service: str,
    operation: str,
    success: bool,
    duration_ms: float | None = None,
    target: str | None = None,
) -> None:
    """Log one upstream call (classifier or database probe)."""
    status = "success" if success else "failed"
    duration = f"{duration_ms:.2f}" if duration_ms else None
    line = _kv(status=status, target=target, duration_ms=duration)
    if success:
        logger.info(f"EXTERNAL {service} {operation} {line}")
    else:
        logger.warning(f"EXTERNAL {service} {operation} {line}")


def log_evaluation(
    tenant_id: str, parts: list[str], duration_ms: float, degraded: bool = False
) -> None:
    """Log the outcome of one engine evaluation."""
    logger.info(
        f"EVALUATION {_kv(tenant=tenant_id, parts='+'.join(parts) or '-', degraded=degraded)} "
        f"duration_ms={duration_ms:.2f}"
    )
