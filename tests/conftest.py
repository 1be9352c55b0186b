"""
Pytest configuration and fixtures for Verdict tests.

This module provides shared fixtures used across unit and integration
tests: a typical request, a small policy set, and YAML documents on disk.
"""

import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from verdict.schema import (
    Action,
    Environment,
    Policy,
    Request,
    Resource,
    Subject,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_request() -> Request:
    """An engineer reading a confidential document."""
    return Request(
        subject=Subject(
            id="alice",
            attributes={
                "department": "Engineering",
                "role": "engineer",
                "level": 5,
                "roles": ["engineer", "reviewer"],
                "profile": {"address": {"city": "NY"}},
            },
        ),
        resource=Resource(
            id="doc-1",
            type="document",
            attributes={"classification": "confidential", "owner": "alice"},
        ),
        action=Action(id="read"),
        environment=Environment(attributes={"network": "internal"}),
    )


@pytest.fixture
def request_mapping() -> dict[str, Any]:
    """The wire form of a simple request."""
    return {
        "subject": {"id": "alice", "attributes": {"department": "Engineering"}},
        "resource": {"id": "doc-1", "type": "document"},
        "action": {"id": "read"},
    }


@pytest.fixture
def engineering_policy() -> Policy:
    """Permits read access to members of Engineering."""
    return Policy.model_validate({
        "id": "engineering-read",
        "effect": "Permit",
        "target": {
            "action": {
                "operator": "equals",
                "left": {"category": "action", "attributeId": "id"},
                "right": "read",
            },
        },
        "condition": {
            "operator": "equals",
            "left": {"category": "subject", "attributeId": "department"},
            "right": "Engineering",
        },
        "obligations": [{"id": "log-access", "type": "log", "parameters": {"level": "info"}}],
    })


@pytest.fixture
def contractor_policy() -> Policy:
    """Denies contractors."""
    return Policy.model_validate({
        "id": "deny-contractors",
        "effect": "Deny",
        "condition": {
            "operator": "equals",
            "left": {"category": "subject", "attributeId": "role"},
            "right": "contractor",
        },
    })


@pytest.fixture
def sample_policies_yaml() -> str:
    """Return a two-policy YAML document."""
    return """
policies:
  - id: engineering-read
    effect: Permit
    description: Engineers may read documents
    target:
      action:
        operator: equals
        left: {category: action, attributeId: id}
        right: read
    condition:
      operator: equals
      left: {category: subject, attributeId: department}
      right: Engineering
    obligations:
      - id: log-access
        type: log
        parameters: {level: info}
  - id: deny-contractors
    effect: Deny
    condition:
      operator: equals
      left: {category: subject, attributeId: role}
      right: contractor
"""


@pytest.fixture
def sample_request_yaml() -> str:
    """Return a request YAML for an engineer reading a document."""
    return """
subject:
  id: alice
  attributes:
    department: Engineering
    role: engineer
resource:
  id: doc-1
  type: document
action:
  id: read
"""


@pytest.fixture
def policies_file(temp_dir: Path, sample_policies_yaml: str) -> Path:
    """Write the sample policies to disk."""
    path = temp_dir / "policies.yaml"
    path.write_text(sample_policies_yaml)
    return path


@pytest.fixture
def request_file(temp_dir: Path, sample_request_yaml: str) -> Path:
    """Write the sample request to disk."""
    path = temp_dir / "request.yaml"
    path.write_text(sample_request_yaml)
    return path
