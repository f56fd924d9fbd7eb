import json

import pytest

from genedai.catalog import load_catalog
from genedai.completion import CompletionService


class FakeCompletionService(CompletionService):
    """Scripted stand-in for the OpenAI service.

    Each handler is a dict to return, an exception to raise, or a callable
    taking ``(system, user)``. Calls are routed by which prompt they carry.
    """

    def __init__(self, course=None, batch=None, outcomes=None, ranking=None, configured=True):
        self.handlers = {"course": course, "batch": batch, "outcomes": outcomes, "ranking": ranking}
        self.configured = configured
        self.calls = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    @staticmethod
    def route(system: str) -> str:
        if "Extract the course name" in system:
            return "course"
        if "Rank how well" in system:
            return "ranking"
        if "Extract the course's own stated" in system:
            return "outcomes"
        return "batch"

    async def complete_json(self, system, user):
        kind = self.route(system)
        self.calls.append((kind, system, user))
        handler = self.handlers[kind]
        if handler is None:
            raise RuntimeError(f"no scripted response for {kind} call")
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(system, user)
        return handler


def batch_names(user: str):
    return [r["name"] for r in json.loads(user)["requirements"]]


def all_met(system, user):
    reqs = json.loads(user)["requirements"]
    return {"results": [
        {
            "requirement": r["name"],
            "status": "MET",
            "matchingElements": r["requiredElements"],
            "matchingSLOs": list(range(1, len(r["slos"]) + 1)),
        }
        for r in reqs
    ]}


def all_not_met(system, user):
    reqs = json.loads(user)["requirements"]
    return {"results": [
        {
            "requirement": r["name"],
            "status": "NOT MET",
            "missingElements": r["requiredElements"],
            "missingSLOs": list(range(1, len(r["slos"]) + 1)),
        }
        for r in reqs
    ]}


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def fake_service():
    return FakeCompletionService


@pytest.fixture
def responders():
    return {"all_met": all_met, "all_not_met": all_not_met, "batch_names": batch_names}
