# src/logdna_shipper/errors.py
"""Exceptions raised by logdna_shipper.

Only logger construction raises to the caller. Logging and flushing degrade
into LogResult / FlushResult values and structured log diagnostics instead.
"""


class LoggerConfigError(ValueError):
    """Raised when logger construction options are invalid.

    Attributes:
        message: Human-readable description of the invalid option(s)
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidLogOptionsError(TypeError):
    """Raised by the formatter when per-call options are neither a string nor a mapping.

    Logger.log() catches this and returns an INVALID_OPTIONS_TYPE result;
    it never reaches application code.
    """

    def __init__(self, options_type: str) -> None:
        self.options_type = options_type
        super().__init__(f"Can only pass a string or a mapping as log options, got {options_type}")
