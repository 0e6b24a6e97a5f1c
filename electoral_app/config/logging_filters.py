import logging
import re

HEALTH_PATHS: tuple[str, ...] = ("/healthz", "/readyz")

# Matches the status code following the quoted request line in both the
# runserver ("GET /healthz HTTP/1.1" 200 12) and gunicorn access formats.
_STATUS_AFTER_REQUEST = re.compile(r'HTTP/[\d.]+"\s+(\d{3})\b')


class HealthEndpointFilter(logging.Filter):
    """Drop access log lines for successful health checks."""

    def __init__(self, name: str = "", paths: tuple[str, ...] = HEALTH_PATHS) -> None:
        super().__init__(name)
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if not any(f" {path} " in message or f" {path}?" in message for path in self.paths):
            return True
        match = _STATUS_AFTER_REQUEST.search(message)
        if match is None:
            return " 200 " not in message
        return match.group(1) != "200"
