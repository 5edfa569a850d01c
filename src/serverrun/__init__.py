"""Start a development server, wait for it to become ready and tear it down."""

from .env_spec import parse_env
from .orchestrator import RunOrchestrator, RunState
from .process_supervisor import ProcessSupervisor
from .run_options import RunOptions
from .server_handle import ServerHandle
from .startup_state import ErrorPattern, StartupPhase, StartupState, classify

__version__ = "0.1.0"

__all__ = [
    "ErrorPattern",
    "ProcessSupervisor",
    "RunOptions",
    "RunOrchestrator",
    "RunState",
    "ServerHandle",
    "StartupPhase",
    "StartupState",
    "classify",
    "parse_env",
]
