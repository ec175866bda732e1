"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from core.logging.context import get_log_context
from core.security.url_validation import sanitize_url


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove credentials and tokens before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        "url",
        "duration_ms",
        "http_status",
        "content_type",
        "error_category",
        "error_message",
        "batch_size",
        "max_concurrent",
        "progress",
        "records_succeeded",
        "records_failed",
        "records_cancelled",
        "retry_count",
        "delay_seconds",
        "cache_key",
        "ttl_seconds",
        "content_length",
        "pool_size",
        "invalid_urls",
        "status",
    ]

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["url"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """Sanitize value if it's a URL field."""
        if key in self.URL_FIELDS and isinstance(value, str):
            return sanitize_url(value)
        if key == "invalid_urls" and isinstance(value, list):
            return [sanitize_url(v) if isinstance(v, str) else v for v in value]
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sanitized URLs."""
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        ctx = get_log_context()
        if ctx["batch_id"]:
            log_entry["batch_id"] = ctx["batch_id"]
        if ctx["worker_id"]:
            log_entry["worker_id"] = ctx["worker_id"]

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._sanitize_value(field, value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes batch context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]
        if ctx["worker_id"]:
            parts.append(f"[{ctx['worker_id']}]")

        prefix = " - ".join(parts)

        batch_id = ctx["batch_id"]
        if batch_id:
            return f"{prefix} - [{batch_id[:8]}] {record.getMessage()}"

        return f"{prefix} - {record.getMessage()}"
