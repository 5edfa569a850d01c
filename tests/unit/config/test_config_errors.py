import pytest

from serverrun.config.errors import ConfigurationError


@pytest.mark.parametrize(
    ("factory", "args", "expected"),
    [
        (
            ConfigurationError.missing_option,
            ("--command", "the server start command is required"),
            "--command is missing or empty: the server start command is required",
        ),
        (
            ConfigurationError.missing_option,
            ("--run-command",),
            "--run-command is missing or empty",
        ),
        (
            ConfigurationError.invalid_option,
            ("--port", 70000, "Expected 1-65535"),
            "Invalid value for --port: 70000. Expected 1-65535",
        ),
        (
            ConfigurationError.invalid_environment,
            ("SERVER_RUN_TIMEOUT_MS", "soon", "an integer"),
            "Environment variable 'SERVER_RUN_TIMEOUT_MS' must be an integer (got 'soon')",
        ),
        (
            ConfigurationError.load_failed,
            ("dotenv file", "/tmp/.env"),
            "Failed to load dotenv file for /tmp/.env",
        ),
    ],
)
def test_configuration_error_factories(factory, args, expected):
    error = factory(*args)
    assert isinstance(error, ConfigurationError)
    assert isinstance(error, RuntimeError)
    assert str(error) == expected
