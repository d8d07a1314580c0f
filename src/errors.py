"""
errors.py

Exception types raised by the export pipeline and the exit code each one
maps to when it reaches the command line.
"""

EXIT_OK = 0
EXIT_INVALID_ARGUMENTS = 2
EXIT_RATE_LIMIT = 3
EXIT_TRANSPORT = 4
EXIT_FILESYSTEM = 5
EXIT_INTERRUPTED = 130


class ExportError(Exception):
    """Base class for every failure the exporter knows how to report."""
    exit_code = EXIT_TRANSPORT


class ArgumentError(ExportError):
    exit_code = EXIT_INVALID_ARGUMENTS


class RateLimitError(ExportError):
    exit_code = EXIT_RATE_LIMIT

    def __init__(self, ceiling: int):
        super().__init__(
            f"Rate limit is {ceiling}. Please wait an hour and try again."
        )
        self.ceiling = ceiling


class TransportError(ExportError):
    """
    Network or HTTP level failure for a single page.

    `retryable` is True for connection problems, timeouts and 5xx answers;
    a 4xx answer will not improve by asking again.
    """
    exit_code = EXIT_TRANSPORT

    def __init__(self, message: str, retryable: bool = True, status: int = None):
        super().__init__(message)
        self.retryable = retryable
        self.status = status


class DecodeError(ExportError):
    exit_code = EXIT_TRANSPORT


class FilesystemError(ExportError):
    exit_code = EXIT_FILESYSTEM
