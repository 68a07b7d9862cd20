"""
pytest configuration and shared fixtures.
"""
import json
import os
from collections import deque
from typing import Any, List, Optional

import pytest

# Tests run against the in-memory store with no read-after-write delay
os.environ["SESSION_STORE_BACKEND"] = "memory"
os.environ["VERIFY_WRITE_DELAY_SECONDS"] = "0"
os.environ["PROVIDER_LLM_PROVIDER"] = "ollama"
os.environ["PROVIDER_LLM_MODEL"] = "qwen2.5:3b"

from interview_core.core.config import Settings  # noqa: E402
from interview_core.models.interview import CreateSessionRequest, JobSetup  # noqa: E402
from interview_core.providers.session_store import InMemorySessionStore, set_session_store  # noqa: E402
from interview_core.services.interview_orchestrator import InterviewOrchestrator  # noqa: E402


RESUME_TEXT = (
    "Backend engineer with six years of Python, FastAPI and PostgreSQL experience. "
    "Led the migration of a monolith to Kubernetes and mentored three junior engineers."
)
JD_TEXT = (
    "We are hiring a senior backend engineer to design scalable APIs in Python, "
    "own PostgreSQL performance and run services on Kubernetes in AWS."
)


class FakeReasoningService:
    """
    Scripted stand-in for ReasoningService.

    Each ``complete`` call pops the next queued response; a queued exception
    is raised instead of returned. Prompts are recorded for assertions.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = deque(responses or [])
        self.prompts: List[str] = []
        self.timeouts: List[float] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def queue(self, *responses: Any) -> "FakeReasoningService":
        self.responses.extend(responses)
        return self

    async def complete(self, prompt, *, system_prompt=None, timeout, config=None) -> str:
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        if not self.responses:
            raise AssertionError("Unexpected reasoning call")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


def questions_json(count: int = 3, difficulty: str = "medium") -> str:
    return json.dumps({
        "questions": [
            {
                "id": f"q{i}",
                "text": f"Question number {i} about Python services?",
                "category": "technical",
                "difficulty": difficulty,
            }
            for i in range(1, count + 1)
        ]
    })


def evaluation_json(
    technical: Any = 7,
    communication: Any = 7,
    problem_solving: Any = 7,
    overall: Any = 7,
    **extra,
) -> str:
    data = {
        "scores": {
            "technical": technical,
            "communication": communication,
            "problem_solving": problem_solving,
        },
        "overall": overall,
        "strengths": ["Explained the trade-offs of connection pooling"],
        "gaps": ["Did not quantify the latency improvement"],
        "follow_up_question": "How did you measure the improvement?",
    }
    data.update(extra)
    return json.dumps(data)


def report_json(**overrides) -> str:
    data = {
        "recommendation": "hire",
        "confidence": 99,
        "executive_summary": "Solid backend candidate with clear Python depth.",
        "strengths": [
            "Designed idempotent payment retries",
            "Profiled PostgreSQL queries with EXPLAIN",
            "Clear incident write-ups",
            "Pragmatic Kubernetes rollout plan",
        ],
        "gaps_and_risks": [
            "Limited exposure to event sourcing",
            "No production Kafka experience",
            "Light on load testing methodology",
            "Unclear ownership of on-call process",
        ],
        "evidence": [
            {
                "claim": "Understands connection pooling",
                "supporting_answer_snippet": "We capped the pool at 20 per pod",
                "related_question_id": "q1",
                "evidence_type": "technical",
            }
        ],
        "next_round_focus": ["System design for multi-region writes"],
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def test_settings():
    """Settings with write verification enabled but without delay."""
    return Settings(verify_writes=True, verify_write_delay_seconds=0)


@pytest.fixture
def memory_store():
    """In-memory store installed as the global session store."""
    store = InMemorySessionStore()
    set_session_store(store)
    yield store
    set_session_store(None)


@pytest.fixture
def fake_reasoning():
    return FakeReasoningService()


@pytest.fixture
def orchestrator(memory_store, fake_reasoning, test_settings):
    return InterviewOrchestrator(
        store=memory_store,
        reasoning=fake_reasoning,
        settings=test_settings,
    )


@pytest.fixture
def self_serve_request():
    return CreateSessionRequest(
        mode="self_serve",
        resume_text=RESUME_TEXT,
        role="Backend Engineer",
        level="senior",
    )


@pytest.fixture
def recruiter_request():
    return CreateSessionRequest(
        mode="recruiter_led",
        resume_text=RESUME_TEXT,
        jd_text=JD_TEXT,
        job_setup=JobSetup(top_skills=["Python", "PostgreSQL"], question_count=5),
        candidate_name="Jordan Lee",
    )


@pytest.fixture
def cohort_request():
    return CreateSessionRequest(
        mode="cohort",
        resume_text=RESUME_TEXT,
        jd_text=JD_TEXT,
        job_setup=JobSetup(top_skills=["Python", "Kubernetes"]),
        template_id="tmpl-2024-backend",
        student_id="stu-001",
    )


async def start_session(orchestrator, fake_reasoning, request, count: int = 3, difficulty: str = "medium"):
    """Create a session and generate ``count`` questions for it."""
    session = await orchestrator.create_session(request)
    fake_reasoning.queue(questions_json(count, difficulty))
    await orchestrator.generate_questions(session.id)
    return session.id


async def complete_session(orchestrator, fake_reasoning, request, overall_scores=(7, 7, 7)):
    """Create, start and answer every question of a session."""
    session_id = await start_session(orchestrator, fake_reasoning, request, count=len(overall_scores))
    for score in overall_scores:
        fake_reasoning.queue(evaluation_json(score, score, score, score))
        await orchestrator.submit_answer(session_id, "A detailed answer with concrete steps.")
    return session_id
