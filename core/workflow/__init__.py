"""Core workflow module - result types and retry coordination.

Reconciliation is a blocking, sequential sequence of ERP calls. This module
holds the ERP-neutral pieces around it: result structures, collaborator
protocols and the retry coordinator.
"""

from core.workflow.base import (
    ReconcileStatus,
    ReconcileResult,
    BatchResult,
    FailureNotifier,
    SourceStatusUpdater,
    LoggingNotifier,
)
from core.workflow.retry import (
    RetryPolicy,
    RetryOutcome,
    RetryCoordinator,
)

__all__ = [
    "ReconcileStatus",
    "ReconcileResult",
    "BatchResult",
    "FailureNotifier",
    "SourceStatusUpdater",
    "LoggingNotifier",
    "RetryPolicy",
    "RetryOutcome",
    "RetryCoordinator",
]
