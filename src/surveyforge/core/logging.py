"""Structured logging for survey design sessions and AI calls."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pythonjsonlogger import jsonlogger


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _build_formatter(json_output: bool) -> logging.Formatter:
    """Create the formatter shared by console and file handlers."""
    if json_output:
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


class StructuredLogger:
    """
    Logger that attaches structured context to every record.

    Context passed as a dict or keyword arguments becomes attributes of the
    log record, so the JSON formatter emits them as top-level fields.
    """

    def __init__(
        self,
        name: str = "surveyforge",
        level: LogLevel = LogLevel.INFO,
        json_output: bool = False,
        log_file: Optional[Path] = None,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Log level
            json_output: If True, output JSON-formatted logs
            log_file: Optional file path to write logs to
        """
        self.name = name
        self.level = level
        self.json_output = json_output
        self.log_file = log_file

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.value))
        self.logger.propagate = False
        self.logger.handlers.clear()

        formatter = _build_formatter(json_output)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level.value))
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            self._add_file_handler(log_file, formatter)

    def _add_file_handler(self, log_file: Path, formatter: logging.Formatter) -> None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(getattr(logging, self.level.value))
        file_handler.setFormatter(formatter)
        self.logger.addHandler(file_handler)

    def reconfigure(
        self,
        level: Optional[LogLevel] = None,
        json_output: Optional[bool] = None,
        log_file: Optional[Path] = None,
    ) -> None:
        """
        Apply new settings to an existing logger.

        Args:
            level: New log level, unchanged if None
            json_output: Switch formatter between JSON and plain text
            log_file: Additional file to log to
        """
        if level is not None:
            self.level = level
            self.logger.setLevel(getattr(logging, level.value))
            for handler in self.logger.handlers:
                handler.setLevel(getattr(logging, level.value))
        if json_output is not None and json_output != self.json_output:
            self.json_output = json_output
            formatter = _build_formatter(json_output)
            for handler in self.logger.handlers:
                handler.setFormatter(formatter)
        if log_file is not None and log_file != self.log_file:
            self._add_file_handler(log_file, _build_formatter(self.json_output))
            self.log_file = log_file

    def _log_with_context(
        self,
        level: int,
        message: str,
        context: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        """
        Log message with additional context.

        Args:
            level: Log level (logging.DEBUG, etc.)
            message: Log message
            context: Additional context dictionary
            **kwargs: Additional keyword arguments to include in log
        """
        if context:
            kwargs.update(context)

        if not self.logger.isEnabledFor(level):
            return

        if kwargs:
            # Context keys become record attributes
            record = self.logger.makeRecord(
                self.logger.name, level, "", 0, message, (), None
            )
            for key, value in kwargs.items():
                setattr(record, key, value)
            self.logger.handle(record)
        else:
            self.logger.log(level, message)

    def debug(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._log_with_context(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log info message."""
        self._log_with_context(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._log_with_context(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log error message."""
        self._log_with_context(logging.ERROR, message, context, **kwargs)

    def critical(self, message: str, context: Optional[dict[str, Any]] = None, **kwargs: Any) -> None:
        """Log critical message."""
        self._log_with_context(logging.CRITICAL, message, context, **kwargs)

    def log_llm_call(
        self,
        provider: str,
        model: str,
        prompt: str,
        response: str,
        latency_ms: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        """
        Log a completed AI generation call.

        Args:
            provider: LLM provider name (e.g., "ollama", "gemini")
            model: Model name
            prompt: Input prompt (truncated in logs)
            response: Response text (truncated in logs)
            latency_ms: Request latency in milliseconds
            **kwargs: Additional metadata
        """
        prompt_preview = prompt[:200] + "..." if len(prompt) > 200 else prompt
        response_preview = response[:200] + "..." if len(response) > 200 else response

        context = {
            "event_type": "llm_call",
            "provider": provider,
            "model": model,
            "prompt_length": len(prompt),
            "response_length": len(response),
            "prompt_preview": prompt_preview,
            "response_preview": response_preview,
        }
        if latency_ms is not None:
            context["latency_ms"] = latency_ms
        context.update(kwargs)

        self.info(f"LLM call: {provider}/{model}", context=context)

    def log_pipeline_stage(
        self,
        stage: str,
        status: str,
        duration_ms: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        """
        Log a generation step.

        Args:
            stage: Step name (e.g., "prompt_compilation", "survey_suggestion")
            status: Status ("started", "completed", "failed")
            duration_ms: Step duration in milliseconds
            **kwargs: Additional metadata
        """
        context = {
            "event_type": "pipeline_stage",
            "stage": stage,
            "status": status,
        }
        if duration_ms is not None:
            context["duration_ms"] = duration_ms
        context.update(kwargs)

        if status == "failed":
            self.error(f"Stage {stage} failed", context=context)
        else:
            self.info(f"Stage {stage} {status}", context=context)

    def log_session_event(
        self,
        event: str,
        template_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        """
        Log an editing-session event at debug level.

        Args:
            event: Event name (e.g., "template_selected", "customization_persisted")
            template_id: Active template, if any
            **kwargs: Additional metadata
        """
        context = {"event_type": "session", "event": event, "template_id": template_id}
        context.update(kwargs)
        self.debug(f"Session event: {event}", context=context)


_loggers: dict[str, StructuredLogger] = {}
_settings: dict[str, Any] = {
    "level": LogLevel.INFO,
    "json_output": False,
    "log_file": None,
}


def get_logger(
    name: str = "surveyforge",
    level: Optional[LogLevel] = None,
    json_output: Optional[bool] = None,
    log_file: Optional[Path] = None,
) -> StructuredLogger:
    """
    Get or create a named structured logger.

    Args:
        name: Logger name
        level: Log level (if None, uses the configured default)
        json_output: If True, output JSON-formatted logs
        log_file: Optional file path to write logs to

    Returns:
        StructuredLogger instance
    """
    existing = _loggers.get(name)
    if existing is None:
        existing = StructuredLogger(
            name=name,
            level=level or _settings["level"],
            json_output=_settings["json_output"] if json_output is None else json_output,
            log_file=log_file or _settings["log_file"],
        )
        _loggers[name] = existing
    elif level is not None or json_output is not None or log_file is not None:
        existing.reconfigure(level=level, json_output=json_output, log_file=log_file)
    return existing


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> StructuredLogger:
    """
    Configure global logging settings.

    Applies to loggers already created and to every logger created later.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON-formatted logs
        log_file: Optional file path to write logs to

    Returns:
        The root "surveyforge" logger
    """
    log_level = LogLevel[level.upper()]
    log_path = Path(log_file) if log_file else None

    _settings["level"] = log_level
    _settings["json_output"] = json_output
    _settings["log_file"] = log_path

    for logger in _loggers.values():
        logger.reconfigure(level=log_level, json_output=json_output, log_file=log_path)

    return get_logger(level=log_level, json_output=json_output, log_file=log_path)
