"""Reconciliation of declared bindings against remote policy documents.

Layered flow for one declaration:
1) observe: fetch the remote policy and classify it
2) decide: non-existent -> create, not up to date -> update, else nothing
3) act: issue at most one full-document write
4) report: record conditions, failures and backoff on the declaration
"""

from __future__ import annotations

from .contracts import ExternalCreation, ExternalObservation, ExternalUpdate, ReconcilePhase
from .driver import PolicyReconciler
from .loop import ReconcileAction, ReconcileLoop, ReconcileOutcome, ReconcilePassResult

__all__ = [
    "ExternalCreation",
    "ExternalObservation",
    "ExternalUpdate",
    "PolicyReconciler",
    "ReconcileAction",
    "ReconcileLoop",
    "ReconcileOutcome",
    "ReconcilePassResult",
    "ReconcilePhase",
]
