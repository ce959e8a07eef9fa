"""Workflow actions: combining, reconciling, pushing and syncing branches."""

from .combine import Merger, Rebaser, select_combiner
from .feature import new_feature_branch
from .push import PushRequest, Pusher
from .reconcile import Reconciler, decide_push_mode
from .safety import verify_sync_preconditions
from .sync import SyncOrchestrator, fetch_remote, sync

__all__ = [
    "Merger",
    "PushRequest",
    "Pusher",
    "Rebaser",
    "Reconciler",
    "SyncOrchestrator",
    "decide_push_mode",
    "fetch_remote",
    "new_feature_branch",
    "select_combiner",
    "sync",
    "verify_sync_preconditions",
]
