"""Pytest configuration and helpers for case hierarchy explorer tests."""

from __future__ import annotations

from io import StringIO
from typing import Any, Dict, List

import pytest
from loguru import logger

# 18-character record ids
ROOT_ID = "500Hs00000AbCdEAAA"
CHILD_A_ID = "500Hs00000AbCdFAAA"
CHILD_B_ID = "500Hs00000AbCdGAAA"
GRANDCHILD_ID = "500Hs00000AbCdHAAA"
OWNER_ID = "005Hs00000XyZ12AAA"
WORK_GROUP_ID = "a0BHs00000QwErTAAA"
# 15-character record id
SHORT_ID = "500Hs00000AbCdI"


def build_sample_tree() -> Dict[str, Any]:
    """Three-level hierarchy using only catalog fields."""
    return {
        "id": ROOT_ID,
        "caseNumber": "00001001",
        "subject": "Parent case",
        "status": "New",
        "priority": "High",
        "caseType": "Problem",
        "aeAm": "Jane Roe",
        "aeAmId": OWNER_ID,
        "workGroup": "Tier 2",
        "workGroupId": WORK_GROUP_ID,
        "createdDate": "2024-03-05T14:30:00Z",
        "children": [
            {
                "id": CHILD_A_ID,
                "caseNumber": "00001002",
                "subject": "First child",
                "status": "Working",
                "createdDate": "2024-03-06T09:00:00.250Z",
                "children": [
                    {
                        "id": GRANDCHILD_ID,
                        "caseNumber": "00001004",
                        "subject": "Grandchild",
                        "status": "Closed",
                        "isClosed": True,
                    }
                ],
            },
            {
                "id": CHILD_B_ID,
                "caseNumber": "00001003",
                "subject": None,
                "status": "New",
            },
        ],
    }


def build_chain(depth: int) -> Dict[str, Any]:
    """Single-path tree ``depth`` levels deep, built without recursion."""
    root: Dict[str, Any] = {"id": f"node-{0}", "caseNumber": "0"}
    current = root
    for level in range(1, depth):
        child: Dict[str, Any] = {"id": f"node-{level}", "caseNumber": str(level)}
        current["children"] = [child]
        current = child
    return root


@pytest.fixture
def sample_tree() -> Dict[str, Any]:
    """Fresh raw hierarchy for each test."""
    return build_sample_tree()


@pytest.fixture
def sample_ids() -> List[str]:
    """Pre-order ids of the sample hierarchy."""
    return [ROOT_ID, CHILD_A_ID, GRANDCHILD_ID, CHILD_B_ID]


@pytest.fixture
def clean_loguru():
    """Fixture to clean loguru handlers before and after tests.

    Ensures tests start with a clean slate and don't interfere with each other.
    """
    logger.remove()  # Remove all existing handlers
    yield
    logger.remove()  # Clean up after test


@pytest.fixture
def log_output():
    """Capture loguru output as ``LEVEL: message`` lines."""
    output = StringIO()
    handler_id = logger.add(output, format="{level}: {message}", level="DEBUG")
    yield output
    logger.remove(handler_id)
