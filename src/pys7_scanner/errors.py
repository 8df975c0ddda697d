"""Exceptions for pys7-scanner: bad address ranges and scan cancellation."""


class PyS7ScannerError(Exception):
    """Base exception for pys7-scanner."""

    pass


class InvalidRangeError(PyS7ScannerError, ValueError):
    """Raised when an address range specification cannot be enumerated."""

    def __init__(self, range_text: str, message: str | None = None) -> None:
        self.range_text = range_text
        self._msg = message or f"Invalid IP range: {range_text!r}"
        super().__init__(self._msg)


class ScanCancelledError(PyS7ScannerError):
    """Raised when the scan's cancellation event fires during a network wait."""

    pass
