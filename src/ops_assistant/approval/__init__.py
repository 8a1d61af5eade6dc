"""Human approval of suspended workflow runs."""

from __future__ import annotations

from ops_assistant.approval.bridge import (
    APPROVE_ACTION_ID,
    SUSPENDED_BLOCK_ID,
    ActionablePrompt,
    ApprovalBridge,
    ResumeRequest,
)
from ops_assistant.approval.tokens import ResumptionToken

__all__ = [
    "APPROVE_ACTION_ID",
    "SUSPENDED_BLOCK_ID",
    "ActionablePrompt",
    "ApprovalBridge",
    "ResumeRequest",
    "ResumptionToken",
]
