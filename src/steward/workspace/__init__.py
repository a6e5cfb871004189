from steward.workspace.committer import CommitResult, CompletionCommitter
from steward.workspace.credentials import (
    AnonymousCredentials,
    CredentialProvider,
    TokenCredentials,
)
from steward.workspace.gate import Baseline, SafetyGate, ScopeViolation
from steward.workspace.sync import SyncResult, WorkingCopySynchronizer

__all__ = [
    "AnonymousCredentials",
    "Baseline",
    "CommitResult",
    "CompletionCommitter",
    "CredentialProvider",
    "SafetyGate",
    "ScopeViolation",
    "SyncResult",
    "TokenCredentials",
    "WorkingCopySynchronizer",
]
