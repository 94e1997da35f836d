"""
Evaluation layer for Agent Trials.

Handles:
- Planning behavior-driven tests (agent choice + message)
- LLM judging of transcripts
- Loose JSON extraction from LLM output
"""

from .json_extract import extract_json_object
from .planner import Planner
from .judge import Judge, MockJudge, format_transcript

__all__ = [
    # Planner
    "Planner",
    # Judge
    "Judge",
    "MockJudge",
    "format_transcript",
    # Parsing
    "extract_json_object",
]
