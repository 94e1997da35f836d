"""
Test case data models for Agent Trials.

A TestCase defines:
- What behavior to exercise (free text, used for AI planning and grading)
- Or an explicit target agent and input message
- The success criteria the judge grades against
- Optional scoping (project) and timing metadata
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any
import uuid

import yaml

from ..exceptions import TestCaseError

DEFAULT_TIMEOUT_MS = 300_000


def generate_id() -> str:
    """Generate a short random identifier for cases, runs and events."""
    return uuid.uuid4().hex[:12]


@dataclass
class TestCase:
    """A single behavior test against an agent.

    Either ``behavior`` is set (the planner picks the agent and/or writes the
    message) or both ``agent_id`` and ``input_message`` are set.

    Example YAML:
        test:
          id: "pricing-001"
          name: "Answers pricing questions"
          behavior: "User asks about pricing; agent quotes the plans without inventing discounts"
          project_id: "support"

        test:
          name: "Greets the user"
          agent_id: "agent-7"
          input_message: "hi"
          eval_criteria: "Agent replies with a friendly greeting"
    """

    __test__ = False

    name: str
    id: str = field(default_factory=generate_id)
    description: Optional[str] = None
    behavior: Optional[str] = None
    agent_id: Optional[str] = None  # None = chosen by the planner
    input_message: Optional[str] = None  # None = generated by the planner
    eval_criteria: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    project_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        # Behavior-driven tests grade against the behavior itself
        if not self.eval_criteria:
            self.eval_criteria = self.behavior or ""
        if not self.timeout_ms:
            self.timeout_ms = DEFAULT_TIMEOUT_MS
        if self.timeout_ms < 0:
            raise TestCaseError("timeout_ms cannot be negative")

    @property
    def is_behavior_driven(self) -> bool:
        """True when the planner has something to fill in."""
        return bool(self.behavior) and not (self.agent_id and self.input_message)

    @property
    def criteria(self) -> str:
        """Text the judge grades against: the behavior wins over eval_criteria."""
        return self.behavior or self.eval_criteria

    def validate(self) -> List[str]:
        """Return the problems with this definition (empty when valid)."""
        issues = []
        if not self.name or not self.name.strip():
            issues.append("Missing required field: name")
        if not self.behavior and not (self.agent_id and self.input_message):
            issues.append(
                "Either 'behavior' or both 'agent_id' and 'input_message' are required"
            )
        if not self.criteria.strip():
            issues.append("No eval_criteria or behavior to grade against")
        return issues

    @classmethod
    def from_yaml(cls, path: Path) -> List["TestCase"]:
        """Load test cases from a YAML file.

        A file holds either a single case (optionally under ``test:``) or a
        list of cases under ``tests:``.

        Raises:
            TestCaseError: If file not found, invalid YAML, or a case is malformed
        """
        if not path.exists():
            raise TestCaseError(f"Test case file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TestCaseError(f"Invalid YAML in {path}: {e}")

        if not data:
            raise TestCaseError(f"Empty test case file: {path}")

        if isinstance(data, dict) and "tests" in data:
            entries = data["tests"] or []
        elif isinstance(data, list):
            entries = data
        else:
            entries = [data]

        return [cls.from_dict(entry, source_path=path) for entry in entries]

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], source_path: Optional[Path] = None
    ) -> "TestCase":
        """Create a TestCase from a dictionary.

        Raises:
            TestCaseError: If required fields missing or validation fails
        """
        if not isinstance(data, dict):
            raise TestCaseError(f"Test case must be a mapping, got {type(data).__name__}")

        case_data = data.get("test", data)
        source = f" in {source_path}" if source_path else ""

        if "name" not in case_data:
            raise TestCaseError(f"Missing required field 'name'{source}")

        try:
            kwargs = dict(
                name=case_data["name"],
                description=case_data.get("description"),
                behavior=case_data.get("behavior"),
                agent_id=case_data.get("agent_id"),
                input_message=case_data.get("input_message"),
                eval_criteria=case_data.get("eval_criteria") or "",
                timeout_ms=int(case_data.get("timeout_ms") or DEFAULT_TIMEOUT_MS),
                project_id=case_data.get("project_id"),
            )
            if case_data.get("id"):
                kwargs["id"] = str(case_data["id"])
            for stamp in ("created_at", "updated_at"):
                if case_data.get(stamp):
                    kwargs[stamp] = _parse_timestamp(case_data[stamp])
            return cls(**kwargs)

        except TestCaseError:
            raise
        except Exception as e:
            raise TestCaseError(f"Failed to parse test case{source}: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "behavior": self.behavior,
            "agent_id": self.agent_id,
            "input_message": self.input_message,
            "eval_criteria": self.eval_criteria,
            "timeout_ms": self.timeout_ms,
            "project_id": self.project_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def to_yaml(self) -> str:
        """Serialize test case to YAML string."""
        return yaml.dump({"test": self.to_dict()}, default_flow_style=False, sort_keys=False)


def load_test_cases(path: Path) -> List[TestCase]:
    """Load test cases from a YAML file or every YAML file under a directory.

    Raises:
        TestCaseError: If the path does not exist or a file fails to load
    """
    if path.is_file():
        return TestCase.from_yaml(path)
    if path.is_dir():
        cases: List[TestCase] = []
        yaml_files = sorted(list(path.rglob("*.yaml")) + list(path.rglob("*.yml")))
        for yaml_file in yaml_files:
            cases.extend(TestCase.from_yaml(yaml_file))
        return cases
    raise TestCaseError(f"Path not found: {path}")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
