"""contentfactory: tracked, controllable content-production workflows."""

from .automation import AutomatedRunner
from .catalog import STEP_CATALOG, StepDefinition
from .collaborators import Collaborators, simulated_collaborators
from .contracts import (
    AutomatedRun,
    ControlRequest,
    Step,
    WorkflowConfig,
    WorkflowProgress,
)
from .dispatch import WorkflowDispatcher
from .errors import (
    ContentFactoryError,
    InvalidTransition,
    StepExecutionError,
    WorkflowCancelled,
    WorkflowValidationError,
)
from .execute import InteractiveRunner, RunToken
from .store import InMemoryWorkflowStore, WorkflowStore, get_store

__version__ = "0.1.0"
__all__ = [
    "AutomatedRun",
    "AutomatedRunner",
    "Collaborators",
    "ContentFactoryError",
    "ControlRequest",
    "InMemoryWorkflowStore",
    "InteractiveRunner",
    "InvalidTransition",
    "RunToken",
    "STEP_CATALOG",
    "Step",
    "StepDefinition",
    "StepExecutionError",
    "WorkflowCancelled",
    "WorkflowConfig",
    "WorkflowDispatcher",
    "WorkflowProgress",
    "WorkflowStore",
    "WorkflowValidationError",
    "get_store",
    "simulated_collaborators",
]
