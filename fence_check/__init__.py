"""Check signed enclave builds for LFENCE Spectre mitigations."""

__version__ = "1.0.0"

from .checker import CheckResult, FenceChecker, run_check
from .exceptions import ScriptError
from .net import resolve_artifact_url

__all__ = [
    "CheckResult",
    "FenceChecker",
    "ScriptError",
    "resolve_artifact_url",
    "run_check",
]
