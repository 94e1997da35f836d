"""
Data models for Agent Trials.

Public exports:
- TestCase and loading helpers
- Result types (TestRun, PlanResult, JudgeVerdict, BatchResult)
- Enums (RunStatus)
"""

from .test_case import (
    DEFAULT_TIMEOUT_MS,
    TestCase,
    generate_id,
    load_test_cases,
)

from .result import (
    RunStatus,
    PlanResult,
    JudgeVerdict,
    TestRun,
    BatchResult,
)

__all__ = [
    # Test case models
    "DEFAULT_TIMEOUT_MS",
    "TestCase",
    "generate_id",
    "load_test_cases",
    # Result models
    "RunStatus",
    "PlanResult",
    "JudgeVerdict",
    "TestRun",
    "BatchResult",
]
