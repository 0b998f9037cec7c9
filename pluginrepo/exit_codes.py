"""
Process exit codes for the pluginrepo CLI.

0-2 follow shell conventions; 64 and up are pluginrepo specific.
"""
import sys
from typing import Optional

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2          # Bad arguments or input

NOT_FOUND = 64           # Tag or package not found
API_ERROR = 65           # GitHub API call failed
CONFIG_ERROR = 66        # Bad repository URL or config file
PERMISSION_ERROR = 67
NETWORK_ERROR = 68       # Downloads failed
DATA_ERROR = 70          # Malformed payload, archive or path
PARTIAL_SUCCESS = 71     # Some tags built, some failed
INTERRUPTED = 130        # Ctrl+C


def _build_exception_table():
    from .errors import (
        DownloadFailedError,
        ExtractionError,
        InvalidInputError,
        InvalidURLError,
        NotFoundError,
        ParseError,
        PathTooLongError,
        TransientIOError,
        UnavailableError,
    )
    return {
        InvalidURLError: CONFIG_ERROR,
        InvalidInputError: USAGE_ERROR,
        NotFoundError: NOT_FOUND,
        UnavailableError: API_ERROR,
        ParseError: DATA_ERROR,
        TransientIOError: NETWORK_ERROR,
        DownloadFailedError: NETWORK_ERROR,
        PathTooLongError: DATA_ERROR,
        ExtractionError: DATA_ERROR,
        FileNotFoundError: NOT_FOUND,
        PermissionError: PERMISSION_ERROR,
        ConnectionError: NETWORK_ERROR,
        TimeoutError: NETWORK_ERROR,
        ValueError: DATA_ERROR,
        KeyboardInterrupt: INTERRUPTED,
    }


def get_exit_code_for_exception(exc: BaseException) -> int:
    """Exit code of the closest mapped class in the exception's MRO."""
    table = _build_exception_table()
    for cls in type(exc).__mro__:
        if cls in table:
            return table[cls]
    return GENERAL_ERROR


def exit_with_code(code: int, message: Optional[str] = None):
    """Print ``message`` to stderr (if any) and exit with ``code``."""
    if message:
        print(message, file=sys.stderr)
    sys.exit(code)
