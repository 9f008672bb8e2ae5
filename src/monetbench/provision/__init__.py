"""Provisioning workflow for monetbench."""

from .engine import ProvisioningEngine, StepResult, StepStatus

__all__ = [
    "ProvisioningEngine",
    "StepResult",
    "StepStatus",
]
