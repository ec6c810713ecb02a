"""
Domain models — Pydantic types for vmsetup.

All models are re-exported here for convenient access:

    from vmsetup.core.models import Action, Receipt, Step, ProvisionConfig
"""

from vmsetup.core.models.action import Action, Receipt
from vmsetup.core.models.settings import (
    AuthConfig,
    CliToolConfig,
    DocumentsConfig,
    ExecutionConfig,
    ProvisionConfig,
    PythonEnvConfig,
    RepositoryConfig,
    SystemConfig,
)
from vmsetup.core.models.state import ProvisionState, RunRecord, StepState
from vmsetup.core.models.step import FailureKind, Step, StepPlan, StepResult
from vmsetup.core.models.template import GeneratedFile

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # settings.py
    "AuthConfig",
    "CliToolConfig",
    "DocumentsConfig",
    "ExecutionConfig",
    "ProvisionConfig",
    "PythonEnvConfig",
    "RepositoryConfig",
    "SystemConfig",
    # state.py
    "ProvisionState",
    "RunRecord",
    "StepState",
    # step.py
    "FailureKind",
    "Step",
    "StepPlan",
    "StepResult",
    # template.py
    "GeneratedFile",
]
