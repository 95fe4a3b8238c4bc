"""
Domain models — pydantic types for modules, rules and actions.

All models are re-exported here for convenient access:

    from apogee.core.models import Module, EnvVarAction, Shell, Config
"""

from apogee.core.models.action import (
    Action,
    AliasAction,
    CdStatement,
    EchoStatement,
    EnvVarAction,
    FunctionAction,
    HookAction,
    PathEntryAction,
    RunStatement,
    SetEnvStatement,
    Statement,
    TemplateRef,
)
from apogee.core.models.activation import ActivationResult, ActivationStatus
from apogee.core.models.config import ApogeeMeta, Config
from apogee.core.models.module import (
    CommandExists,
    DetectRule,
    EnvVarEquals,
    EnvVarSet,
    FileExists,
    Module,
    PathExists,
    VersionSatisfies,
)
from apogee.core.models.shell import Platform, Shell

__all__ = [
    # action.py
    "Action",
    "AliasAction",
    "CdStatement",
    "EchoStatement",
    "EnvVarAction",
    "FunctionAction",
    "HookAction",
    "PathEntryAction",
    "RunStatement",
    "SetEnvStatement",
    "Statement",
    "TemplateRef",
    # activation.py
    "ActivationResult",
    "ActivationStatus",
    # config.py
    "ApogeeMeta",
    "Config",
    # module.py
    "CommandExists",
    "DetectRule",
    "EnvVarEquals",
    "EnvVarSet",
    "FileExists",
    "Module",
    "PathExists",
    "VersionSatisfies",
    # shell.py
    "Platform",
    "Shell",
]
