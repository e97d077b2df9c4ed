import logging
import sys

# Per-request chatter from the HTTP, AWS and PDF libraries.
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "botocore", "boto3", "s3transfer", "pdfminer")


class Log:
    """Process-wide logging facade. Messages name the document or job they concern."""

    _logger: logging.Logger = logging.getLogger("cpadocs")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Attach a stdout handler once and set levels for cpadocs and its libraries."""
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level '{log_level}'")
        cls._logger.setLevel(level)
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
            cls._logger.addHandler(handler)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log at error level with the traceback of the exception being handled."""
        cls._logger.exception(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
