from datetime import datetime
from typing import Any, List

import pytest
from fastapi.testclient import TestClient

from agentor_builder import AgentorWizard
from schemas import FlowchartOutput, FollowUpQuestionsOutput, MCQ

FIXED_NOW = datetime(2025, 5, 1, 12, 30, 0)


class FakeLLM:
    """Scripted stand-in for LLMInterface.

    Each queue entry is returned as-is, or raised when it is an exception.
    """

    def __init__(self):
        self.question_results: List[Any] = []
        self.flowchart_results: List[Any] = []
        self.question_calls: List[Any] = []
        self.flowchart_calls: List[Any] = []

    @staticmethod
    def _next(queue: List[Any]):
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def generate_follow_up_questions(self, payload):
        self.question_calls.append(payload)
        return self._next(self.question_results)

    def generate_flowchart(self, payload):
        self.flowchart_calls.append(payload)
        return self._next(self.flowchart_results)


def questions(*items) -> FollowUpQuestionsOutput:
    """questions(("Which channel?", ["Email", "SMS"]), ...)"""
    return FollowUpQuestionsOutput(
        follow_up_questions=[MCQ(question_text=text, options=list(options)) for text, options in items]
    )


def flowchart(text: str) -> FlowchartOutput:
    return FlowchartOutput(flowchart_diagram=text)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def wizard_service(fake_llm):
    return AgentorWizard(llm=fake_llm, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(wizard_service):
    from main import app, get_agent

    app.dependency_overrides[get_agent] = lambda: wizard_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
