import logging


class RedactionFilter(logging.Filter):
    """Mask credential fields passed through ``extra=``."""

    BLOCKED_KEYS = {"password", "otp", "token", "api_key", "reset_token"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.BLOCKED_KEYS:
            if hasattr(record, key):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    root = logging.getLogger()
    # Handler filters see records propagated from child loggers; logger filters do not.
    for handler in root.handlers:
        if not any(isinstance(existing, RedactionFilter) for existing in handler.filters):
            handler.addFilter(RedactionFilter())
