import pytest

from serverrun.startup_state import StartupPhase, classify, match_error_pattern
from serverrun.startup_state_helpers import DEFAULT_ERROR_PATTERNS


@pytest.mark.parametrize(
    "output, expected_reason",
    [
        ("Error: listen EADDRINUSE: address already in use :::3000", "Address already in use - port is already occupied"),
        ("Error: listen EACCES: permission denied 0.0.0.0:80", "Permission denied - insufficient privileges"),
        ("error: cannot bind to 127.0.0.1:8080", "Binding error - cannot bind to the specified address or port"),
        ("sh: 1: next: command not found", "Command not found - check if the specified command exists"),
        ("npm ERR! missing script: dev", "NPM error - check npm package or script"),
        ("error: unknown option '--prot'", "Unknown command option - check command syntax"),
        ("SyntaxError: Unexpected token }", "Syntax error in script or configuration"),
        ("Failed to start server", "Server failed to start"),
        ("Error: Cannot find module 'express'", "Module not found - missing dependency"),
        ("FATAL ERROR: Reached heap limit", "Fatal error occurred during startup"),
        ("Timeout exceeded while compiling", "Timeout exceeded while starting the server"),
    ],
)
def test_default_patterns_match_common_failures(output, expected_reason):
    matched = match_error_pattern(output, DEFAULT_ERROR_PATTERNS)
    assert matched is not None
    assert matched.description == expected_reason


def test_default_patterns_ignore_normal_startup_output():
    output = "> dev\n> vite\n\n  VITE v5.0.0  ready in 312 ms\n  Local: http://localhost:5173/\n"
    assert classify(output, "", 1000, 30000, DEFAULT_ERROR_PATTERNS).phase is StartupPhase.STARTING
