"""Exceptions raised by the performance monitor."""


class PerfMonError(RuntimeError):
    """Base class for performance monitor errors."""


class ConfigurationError(PerfMonError, ValueError):
    """Raised when a bucket, classifier or config is built from invalid settings."""


class UnknownComponentError(PerfMonError, KeyError):
    """Raised when a duration is recorded for a component that was never registered."""

    def __init__(self, component_id):
        super().__init__(f"Unknown component: {component_id!r}")
        self.component_id = component_id

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return self.args[0]


class TraceFormatError(PerfMonError, ValueError):
    """Raised when a timing trace line cannot be parsed."""

    def __init__(self, line_number: int, message: str):
        super().__init__(f"Line {line_number}: {message}")
        self.line_number = line_number
