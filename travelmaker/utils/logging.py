"""Structured logging for upstream calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class StructuredUpstreamLogger:
    """Structured logger for geocoding, exchange-rate and model calls."""

    def log_call(
        self,
        service: str,
        outcome: str,
        latency_ms: float,
        cache_hit: bool = False,
        error_reason: str | None = None,
    ) -> None:
        """Log upstream call with structured data."""
        log_data: dict[str, Any] = {
            "service": service,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "cache_hit": cache_hit,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Upstream call: {service} - {outcome}"

        if outcome in ("success", "cache_hit"):
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
