# antimev/transfer/__init__.py
"""
AntiMEV Transfer: the submission pipeline.

Usage:
    from antimev.transfer import TransferOrchestrator, TransferRequest, StepRecorder
"""

from .orchestrator import (
    TransferOrchestrator,
    TransferRequest,
    PendingProtectedState,
    RPCClientFactory,
)
from .steps import (
    TransferState,
    TransferStep,
    StepObserver,
    StepRecorder,
    notify,
)

__all__ = [
    "TransferOrchestrator",
    "TransferRequest",
    "PendingProtectedState",
    "RPCClientFactory",
    "TransferState",
    "TransferStep",
    "StepObserver",
    "StepRecorder",
    "notify",
]
