"""Fatal output patterns that indicate a server failed to start."""

from typing import Tuple

from ..startup_state import ErrorPattern

DEFAULT_ERROR_PATTERNS: Tuple[ErrorPattern, ...] = (
    ErrorPattern.compile(r"EADDRINUSE", "Address already in use - port is already occupied"),
    ErrorPattern.compile(r"EACCES", "Permission denied - insufficient privileges"),
    ErrorPattern.compile(
        r"error:\s*cannot\s+bind",
        "Binding error - cannot bind to the specified address or port",
    ),
    ErrorPattern.compile(r"command not found", "Command not found - check if the specified command exists"),
    ErrorPattern.compile(r"npm ERR!", "NPM error - check npm package or script"),
    ErrorPattern.compile(
        r"error: unknown option|error: unrecognized option",
        "Unknown command option - check command syntax",
    ),
    ErrorPattern.compile(r"syntax error|syntaxerror", "Syntax error in script or configuration"),
    ErrorPattern.compile(r"failed to start|failed to launch|cannot start", "Server failed to start"),
    ErrorPattern.compile(
        r"error: module not found|cannot find module",
        "Module not found - missing dependency",
    ),
    ErrorPattern.compile(r"fatal error|fatal exception", "Fatal error occurred during startup"),
    ErrorPattern.compile(r"timeout exceeded", "Timeout exceeded while starting the server"),
)
