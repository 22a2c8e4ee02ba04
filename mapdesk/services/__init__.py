"""Services layer - Application services orchestrating domain logic.

Services coordinate between ports to implement use cases. They depend
only on port protocols, never on concrete adapters.
"""

from .name_resolver import NameResolver
from .reconciliation import ReconciliationReport, reconcile_requests
from .session_bootstrap import Reconstruction, ReconstructionStrategy, reconstruct_edits
from .workflow import ApprovalOutcome, EditTarget, WorkflowEngine, moderation_target

__all__ = [
    "ApprovalOutcome",
    "EditTarget",
    "NameResolver",
    "Reconstruction",
    "ReconstructionStrategy",
    "ReconciliationReport",
    "WorkflowEngine",
    "moderation_target",
    "reconcile_requests",
    "reconstruct_edits",
]
