"""Travel Lifecycle - approval chain and post-travel accountability engine."""

from .alerts import DispatchFailure, DispatchResult, OverdueAlertDispatcher
from .deadlines import (
    DeadlineClass,
    DeadlinePolicy,
    DeadlineStatus,
    alert_return_date,
    classify,
    days_remaining,
    evaluate,
)
from .exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    IncompleteSubmissionError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    ValidationError,
)
from .lifecycle import (
    TRANSITIONS,
    ApproverRequirement,
    ApproverResolver,
    DepartmentScopedResolver,
    FlatChainResolver,
    LifecycleEngine,
    StatusChange,
    SweepResult,
    is_valid_transition,
)
from .models import (
    AccountabilityChecklist,
    ApprovalWorkflowEntry,
    FundingSource,
    Notification,
    Profile,
    ProfileRole,
    TravelRequest,
    TravelStatus,
    WorkflowAction,
)
from .portaria import PORTARIA_TOKENS, fill_template, portaria_values
from .settings import LifecycleSettings
from .storage import (
    InMemoryProfileDirectory,
    InMemoryTemplateProvider,
    InMemoryTravelStore,
    ProfileDirectory,
    TemplateProvider,
    TravelStore,
)
from .workflow_log import ApprovalWorkflowLog

__all__ = [
    "AccountabilityChecklist",
    "ApprovalWorkflowEntry",
    "ApprovalWorkflowLog",
    "ApproverRequirement",
    "ApproverResolver",
    "AuthorizationError",
    "ConcurrentModificationError",
    "DeadlineClass",
    "DeadlinePolicy",
    "DeadlineStatus",
    "DepartmentScopedResolver",
    "DispatchFailure",
    "DispatchResult",
    "FlatChainResolver",
    "FundingSource",
    "InMemoryProfileDirectory",
    "InMemoryTemplateProvider",
    "InMemoryTravelStore",
    "IncompleteSubmissionError",
    "InvalidTransitionError",
    "LifecycleEngine",
    "LifecycleError",
    "LifecycleSettings",
    "NotFoundError",
    "Notification",
    "OverdueAlertDispatcher",
    "PORTARIA_TOKENS",
    "Profile",
    "ProfileDirectory",
    "ProfileRole",
    "StatusChange",
    "SweepResult",
    "TRANSITIONS",
    "TemplateProvider",
    "TravelRequest",
    "TravelStatus",
    "TravelStore",
    "ValidationError",
    "WorkflowAction",
    "alert_return_date",
    "classify",
    "days_remaining",
    "evaluate",
    "fill_template",
    "is_valid_transition",
    "portaria_values",
    "__version__",
]
__version__ = "0.1.0"
