"""
Domain models — Pydantic types and step values.

All models are re-exported here for convenient access:

    from postinstall.core.models import Action, Receipt, Step, ExecutionLog
"""

from postinstall.core.models.action import Action, Receipt
from postinstall.core.models.config import (
    AptRepository,
    AudioFix,
    GoEnvironment,
    GoTool,
    PythonTools,
    SetupConfig,
    SystemUpdate,
    TmuxSetup,
)
from postinstall.core.models.log import ExecutionLog, LogEntry, StepOutcome
from postinstall.core.models.step import ExecutionMode, Step

__all__ = [
    # action.py
    "Action",
    # config.py
    "AptRepository",
    "AudioFix",
    # log.py
    "ExecutionLog",
    # step.py
    "ExecutionMode",
    "GoEnvironment",
    "GoTool",
    "LogEntry",
    "PythonTools",
    "Receipt",
    "SetupConfig",
    "Step",
    "StepOutcome",
    "SystemUpdate",
    "TmuxSetup",
]
