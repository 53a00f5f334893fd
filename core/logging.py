"""
Centralized logging with component loggers, rotating files and structured fields.

Two front-ends share one stdlib handler tree:

* ``get_logger(name)`` returns a :class:`StructuredLogger` whose keyword
  arguments become JSON fields (python-json-logger) or ``key=value`` pairs.
* ``structlog.get_logger()`` is configured to render through the same stdlib
  handlers, so middleware and exception handlers can keep using structlog.
"""
import atexit
import logging
import logging.handlers
import re
import sys
import threading
from pathlib import Path
from typing import Any, Dict

import structlog
from pythonjsonlogger import jsonlogger

from core.config import settings


# Attributes owned by logging.LogRecord; structured fields must not shadow them.
_RESERVED_RECORD_KEYS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class ComponentFilter(logging.Filter):
    """Ensure every record carries a ``component`` field."""

    def __init__(self, default_component: str = "app"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        if not hasattr(record, "component"):
            logger_name = record.name
            if logger_name in ("httpx", "uvicorn", "uvicorn.access"):
                record.component = "http"
            elif logger_name.startswith("sqlalchemy"):
                record.component = "storage"
            else:
                record.component = self.default_component
        return True


class SecurityFilter(logging.Filter):
    """Remove credentials and tokens from log records."""

    SENSITIVE_KEYS = {
        "password", "password_hash", "token", "secret", "api_key",
        "authorization", "credential", "jwt", "bearer",
    }

    _long_secret = re.compile(r"\b[A-Za-z0-9]{32,}\b")
    _bearer = re.compile(r"Bearer\s+[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+")
    _url_credentials = re.compile(r"://[^:/@]+:[^@]+@")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self._sanitize_message(record.msg)
        if record.args:
            record.args = tuple(self._sanitize_value(arg) for arg in record.args)
        for key in list(record.__dict__):
            if key in _RESERVED_RECORD_KEYS:
                continue
            if any(sensitive in key.lower() for sensitive in self.SENSITIVE_KEYS):
                record.__dict__[key] = "[REDACTED]"
        return True

    def _sanitize_message(self, message: str) -> str:
        message = self._long_secret.sub("[REDACTED]", message)
        message = self._bearer.sub("Bearer [REDACTED]", message)
        return self._url_credentials.sub("://[REDACTED]:[REDACTED]@", message)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._sanitize_message(value)
        if isinstance(value, dict):
            return {
                k: "[REDACTED]" if any(s in str(k).lower() for s in self.SENSITIVE_KEYS) else v
                for k, v in value.items()
            }
        return value


class StructuredLogger:
    """A logger wrapper that accepts structured fields as keyword arguments."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        exc_info = kwargs.pop("exc_info", False)
        extra = dict(kwargs.pop("extra", {}) or {})
        extra.setdefault("component", self.name)

        fields = {}
        for key, value in kwargs.items():
            safe_key = f"field_{key}" if key in _RESERVED_RECORD_KEYS else key
            fields[safe_key] = value

        if settings.log_format == "json":
            extra.update(fields)
        elif fields:
            msg = f"{msg} [{', '.join(f'{k}={v}' for k, v in fields.items())}]"

        self._logger.log(level, msg, *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


class CentralizedLogManager:
    """Singleton that owns the handler tree for the whole process."""

    _instance = None
    _lock = threading.Lock()
    _initialized = False

    # component -> (settings attribute holding the file name, logger names)
    COMPONENTS = {
        "security": ("security_log_file", ["security", "auth"]),
        "ai": ("ai_log_file", ["ai_manager", "ai_providers"]),
        "storage": ("storage_log_file", ["storage", "database", "sqlalchemy.engine"]),
        "access": ("access_log_file", ["access", "uvicorn.access"]),
    }

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._loggers: Dict[str, StructuredLogger] = {}
        self._handlers: Dict[str, logging.Handler] = {}

        with self._lock:
            if not self._initialized:
                self._setup_root_logger()
                if settings.enable_file_logging:
                    self._setup_component_files()
                self._configure_structlog()
                self._initialized = True

    def _create_formatter(self) -> logging.Formatter:
        if settings.log_format == "json":
            return jsonlogger.JsonFormatter(
                fmt="%(asctime)s %(name)s %(levelname)s %(component)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        return logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def _decorate(self, handler: logging.Handler, level: int) -> logging.Handler:
        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter())
        return handler

    def _create_rotating_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        log_directory = Path(settings.log_directory)
        log_directory.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_directory / log_file),
            maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
            backupCount=settings.log_file_backup_count,
            encoding="utf-8",
        )
        return self._decorate(handler, level)

    def _setup_root_logger(self):
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        console_handler = self._decorate(logging.StreamHandler(sys.stdout), level)
        root_logger.addHandler(console_handler)
        self._handlers["console"] = console_handler

        if settings.enable_file_logging:
            app_handler = self._create_rotating_handler(settings.app_log_file)
            error_handler = self._create_rotating_handler(settings.error_log_file, logging.ERROR)
            root_logger.addHandler(app_handler)
            root_logger.addHandler(error_handler)
            self._handlers["app"] = app_handler
            self._handlers["error"] = error_handler

        sql_level = logging.INFO if settings.enable_sql_logging else logging.WARNING
        logging.getLogger("sqlalchemy.engine").setLevel(sql_level)

    def _setup_component_files(self):
        for component, (file_setting, logger_names) in self.COMPONENTS.items():
            handler = self._create_rotating_handler(getattr(settings, file_setting))
            self._handlers[component] = handler
            for logger_name in logger_names:
                logging.getLogger(logger_name).addHandler(handler)

    def _configure_structlog(self):
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer(colors=False),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str) -> StructuredLogger:
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        """Flush and close every handler this manager installed."""
        for handler_name, handler in list(self._handlers.items()):
            for logger in [logging.getLogger()] + [
                logging.getLogger(name) for _, names in self.COMPONENTS.values() for name in names
            ]:
                if handler in logger.handlers:
                    logger.removeHandler(handler)
            try:
                handler.close()
            except OSError as e:
                sys.stderr.write(f"Error closing log handler {handler_name}: {e}\n")
        self._handlers.clear()
        self._loggers.clear()
        CentralizedLogManager._initialized = False
        CentralizedLogManager._instance = None


_log_manager = None


def setup_logging() -> CentralizedLogManager:
    """Install the handler tree once per process."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    return setup_logging().get_logger(name)


def shutdown_logging():
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


# Pre-configured logger instances for common components
app_logger = get_logger("app")
security_logger = get_logger("security")
ai_logger = get_logger("ai_manager")


atexit.register(shutdown_logging)
