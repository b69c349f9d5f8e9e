"""
Root pytest configuration and shared fixtures.

Provides a sample nested application payload and its normalized store, and
resets module-level configuration between tests.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict

import pytest

from spectree.cli.registry import set_context
from spectree.config import set_config
from spectree.core.context import correlation_id_var
from spectree.core.logging_config import ROOT_LOGGER_NAME
from spectree.core.models import HierarchyStore
from spectree.core.normalizer import normalize

APP_ID = "app-1"

SAMPLE_PAYLOAD: Dict[str, Any] = {
    "globalInformation": "Online store rebuild",
    "contextualQuestions": [
        {"documentId": "q-1", "question": "Which payment providers?", "answer": "Stripe"},
    ],
    "epics": [
        {
            "documentId": "epic-1",
            "title": "Checkout",
            "description": "Let customers buy things",
            "goal": "Reduce cart abandonment",
            "successCriteria": "Conversion above 3%",
            "dependencies": "",
            "timeline": "Q1",
            "resources": "Two engineers",
            "risksAndMitigation": [{"risk": "PCI scope", "mitigation": "Hosted fields"}],
            "features": [
                {
                    "documentId": "feature-1",
                    "title": "Cart",
                    "description": "Shopping cart",
                    "details": "Persisted per session",
                    "priority": "high",
                    "effort": "M",
                    "acceptanceCriteria": [{"text": "Items persist across reloads"}],
                    "userStories": [
                        {
                            "documentId": "story-1",
                            "title": "Add to cart",
                            "role": "shopper",
                            "action": "add an item to my cart",
                            "goal": "buy it later",
                            "points": "3",
                            "developmentOrder": 1,
                            "tasks": [
                                {
                                    "documentId": "task-1",
                                    "title": "Build add button",
                                    "details": "Button on product page",
                                    "priority": "high",
                                },
                                {
                                    "documentId": "task-2",
                                    "title": "Wire cart API",
                                    "details": "POST /cart/items",
                                    "priority": "medium",
                                },
                            ],
                        },
                        {
                            "documentId": "story-2",
                            "title": "Remove from cart",
                            "role": "shopper",
                            "action": "remove an item",
                            "goal": "change my mind",
                            "points": "2",
                            "developmentOrder": 2,
                            "tasks": [],
                        },
                    ],
                },
                {
                    "documentId": "feature-2",
                    "title": "Payments",
                    "description": "Card payments",
                    "details": "",
                    "userStories": [
                        {
                            "documentId": "story-3",
                            "title": "Pay by card",
                            "role": "shopper",
                            "action": "pay with a card",
                            "goal": "complete my order",
                            "points": "5",
                            "tasks": [
                                {
                                    "documentId": "task-3",
                                    "title": "Integrate gateway",
                                    "details": "",
                                    "priority": "high",
                                },
                            ],
                        },
                    ],
                },
            ],
        },
        {
            "documentId": "epic-2",
            "title": "Accounts",
            "description": "Customer accounts",
            "goal": "",
            "successCriteria": "",
            "dependencies": "",
            "timeline": "Q2",
            "resources": "",
            "features": [
                {
                    "documentId": "feature-3",
                    "title": "Login",
                    "description": "Email login",
                    "details": "",
                    "userStories": [],
                },
            ],
        },
    ],
}


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    """A fresh copy of the nested sample application."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def sample_store(sample_payload) -> HierarchyStore:
    """The sample application, normalized."""
    return normalize(sample_payload, "chat-key", APP_ID)


@pytest.fixture
def payload_file(tmp_path: Path, sample_payload) -> Path:
    """The nested sample written to disk, with its application id."""
    path = tmp_path / "app.json"
    path.write_text(json.dumps({"id": APP_ID, **sample_payload}))
    return path


@pytest.fixture(autouse=True)
def reset_module_state(monkeypatch):
    """Isolate tests from SPECTREE_* env vars and global config/logging."""
    for name in (
        "SPECTREE_CONFIG_FILE",
        "SPECTREE_LOG_LEVEL",
        "SPECTREE_STRUCTURED_LOGGING",
        "SPECTREE_ITEM_HEIGHT",
        "SPECTREE_OVERSCAN",
        "SPECTREE_DEFAULT_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    token = correlation_id_var.set("")
    yield
    correlation_id_var.reset(token)
    set_config(None)
    set_context(None)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
