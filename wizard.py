"""
Wizard state machine: DESCRIBE -> CLARIFY -> EXPORT.

Every transition takes the current ``WizardSession`` and returns a new one;
sessions are never mutated in place. Guards raise ``AgentorError`` for empty
input and ``WizardError`` for everything else.
"""
import re
import logging
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple

import config
from errors import AgentorError, ErrorKind, WizardError
from prompts import EMPTY_DESCRIPTION_MESSAGE, FLOWCHART_ERROR_MESSAGES, IMAGE_TOO_LARGE_MESSAGE, NO_QUESTIONS_NOTICE
from schemas import MCQ, FlowchartInput, FollowUpQuestionsOutput
from state import FlowchartImage, WizardSession, WizardStep

logger = logging.getLogger(__name__)

REFINEMENT_HEADER = "\n\nFurther refinement based on user's answers to clarifying questions:\n"
_IMAGE_MIME_RE = re.compile(r"image/[\w.+-]+")


def new_session(session_id: str) -> WizardSession:
    return WizardSession(session_id=session_id)


def reset_session(session: WizardSession) -> WizardSession:
    """Start over, keeping the request counters so late responses are dropped."""
    return WizardSession(
        session_id=session.session_id,
        questions_token=session.questions_token + 1,
        flowchart_token=session.flowchart_token + 1,
    )


def update_description(session: WizardSession, text: str) -> WizardSession:
    return replace(session, use_case_description=text)


# ---------------------------------------------------------------------------
# Clarifying questions
# ---------------------------------------------------------------------------

def begin_question_request(session: WizardSession) -> Tuple[WizardSession, int]:
    if not session.use_case_description.strip():
        raise AgentorError(ErrorKind.EMPTY_INPUT, EMPTY_DESCRIPTION_MESSAGE)
    if session.is_loading_questions:
        raise WizardError("Follow-up questions are already being generated.")
    token = session.questions_token + 1
    return replace(session, is_loading_questions=True, questions_token=token, error=None, notice=None), token


def complete_question_request(session: WizardSession, token: int, output: FollowUpQuestionsOutput) -> WizardSession:
    if token != session.questions_token:
        logger.warning("[WIZARD] discarding stale questions response for %s", session.session_id)
        return session
    questions = tuple(output.follow_up_questions)
    # A new question set invalidates every previous answer
    return replace(
        session,
        follow_up_questions=questions,
        mcq_answers={},
        is_loading_questions=False,
        current_step=WizardStep.CLARIFY,
        notice=None if questions else NO_QUESTIONS_NOTICE,
    )


def fail_question_request(session: WizardSession, token: int, message: str) -> WizardSession:
    if token != session.questions_token:
        logger.warning("[WIZARD] discarding stale questions failure for %s", session.session_id)
        return session
    return replace(session, is_loading_questions=False, error=message)


def answer_question(session: WizardSession, question_id: str, option: str) -> WizardSession:
    if not any(q.question_id == question_id for q in session.follow_up_questions):
        raise WizardError(f"Unknown question: {question_id}")
    answers = dict(session.mcq_answers)
    answers[question_id] = option
    return replace(session, mcq_answers=answers)


# ---------------------------------------------------------------------------
# Flowchart image
# ---------------------------------------------------------------------------

def attach_flowchart_image(session: WizardSession, content: bytes, mime_type: str, filename: str) -> WizardSession:
    if not _IMAGE_MIME_RE.fullmatch(mime_type or ""):
        raise WizardError("Please upload an image file for the flowchart.")
    if not content:
        raise WizardError("The uploaded flowchart image is empty.")
    if len(content) > config.MAX_IMAGE_BYTES:
        raise WizardError(IMAGE_TOO_LARGE_MESSAGE.format(limit=config.MAX_IMAGE_BYTES))
    return replace(session, flowchart_image=FlowchartImage.from_bytes(content, mime_type, filename))


def remove_flowchart_image(session: WizardSession) -> WizardSession:
    return replace(session, flowchart_image=None)


# ---------------------------------------------------------------------------
# Flowchart generation
# ---------------------------------------------------------------------------

def build_flowchart_description(description: str, questions: Sequence[MCQ], answers: Dict[str, str]) -> str:
    """Append one Q/A block per answered question, in question order."""
    blocks = [
        f"Q: {q.question_text}\nA: {answers[q.question_id]}\n"
        for q in questions
        if answers.get(q.question_id)
    ]
    if not blocks:
        return description
    return description + REFINEMENT_HEADER + "".join(blocks)


def begin_flowchart_request(session: WizardSession) -> Tuple[WizardSession, int, FlowchartInput]:
    if not session.use_case_description.strip():
        raise AgentorError(ErrorKind.EMPTY_INPUT, FLOWCHART_ERROR_MESSAGES[ErrorKind.EMPTY_INPUT])
    if session.is_loading_flowchart:
        raise WizardError("A flowchart is already being generated.")
    payload = FlowchartInput(
        description=build_flowchart_description(
            session.use_case_description, session.follow_up_questions, session.mcq_answers
        ),
        flowchart_image=session.flowchart_image.data_uri if session.flowchart_image else None,
    )
    token = session.flowchart_token + 1
    return replace(session, is_loading_flowchart=True, flowchart_token=token, error=None, notice=None), token, payload


def complete_flowchart_request(session: WizardSession, token: int, flowchart_text: str) -> WizardSession:
    if token != session.flowchart_token:
        logger.warning("[WIZARD] discarding stale flowchart response for %s", session.session_id)
        return session
    return replace(
        session,
        generated_flowchart_text=flowchart_text,
        is_loading_flowchart=False,
        current_step=WizardStep.EXPORT,
    )


def fail_flowchart_request(session: WizardSession, token: int, message: str) -> WizardSession:
    # The previous flowchart, if any, stays in place
    if token != session.flowchart_token:
        logger.warning("[WIZARD] discarding stale flowchart failure for %s", session.session_id)
        return session
    return replace(session, is_loading_flowchart=False, error=message)


def edit_flowchart_text(session: WizardSession, text: str) -> WizardSession:
    return replace(session, generated_flowchart_text=text)


# ---------------------------------------------------------------------------
# Navigation & export guards
# ---------------------------------------------------------------------------

def navigation_block_reason(session: WizardSession, step: WizardStep) -> Optional[str]:
    if step == WizardStep.CLARIFY and not session.use_case_description.strip():
        return EMPTY_DESCRIPTION_MESSAGE
    if step == WizardStep.EXPORT and not session.generated_flowchart_text.strip():
        return "Please generate the flowchart first."
    return None


def navigate(session: WizardSession, step: WizardStep) -> WizardSession:
    reason = navigation_block_reason(session, step)
    if reason:
        raise WizardError(reason)
    return replace(session, current_step=step, error=None)


def ensure_exportable(session: WizardSession) -> None:
    if not session.generated_flowchart_text.strip():
        raise WizardError("Please generate the flowchart before exporting.")
