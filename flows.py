"""
Prompt invocation layer.

Both operations validate their input, make exactly one call to the model
backend and translate every failure into an ``AgentorError`` carrying one of
the fixed user-facing messages from ``prompts``.
"""
import logging
from typing import Dict, Optional

from pydantic import ValidationError

from errors import AgentorError, ErrorKind, ModelCallError, ModelErrorKind
from prompts import FLOWCHART_ERROR_MESSAGES, FOLLOW_UP_ERROR_MESSAGES
from schemas import FlowchartInput, FlowchartOutput, FollowUpQuestionsInput, FollowUpQuestionsOutput

logger = logging.getLogger(__name__)

_OVERLOADED_MARKERS = ("503 Service Unavailable", "model is overloaded", "overloaded")
_INVALID_KEY_MARKERS = ("API key not valid",)

_MODEL_KIND_TO_ERROR = {
    ModelErrorKind.OVERLOADED: ErrorKind.MODEL_OVERLOADED,
    ModelErrorKind.AUTH_FAILED: ErrorKind.INVALID_CREDENTIALS,
    ModelErrorKind.OTHER: ErrorKind.UNKNOWN_MODEL_FAILURE,
}


def classify_failure(exc: Exception) -> ErrorKind:
    if isinstance(exc, AgentorError):
        return exc.kind
    if isinstance(exc, ModelCallError):
        return _MODEL_KIND_TO_ERROR[exc.kind]
    # Untyped failures from other transports: fall back to message matching
    message = str(exc)
    if any(marker in message for marker in _OVERLOADED_MARKERS):
        return ErrorKind.MODEL_OVERLOADED
    if any(marker in message for marker in _INVALID_KEY_MARKERS):
        return ErrorKind.INVALID_CREDENTIALS
    return ErrorKind.UNKNOWN_MODEL_FAILURE


def _translate(exc: Exception, messages: Dict[ErrorKind, str], operation: str) -> AgentorError:
    kind = classify_failure(exc)
    logger.error("[FLOW] %s failed (%s): %s", operation, kind.value, exc, exc_info=exc)
    return AgentorError(kind, messages[kind].format(detail=str(exc)))


def _default_llm():
    from llm import LLMInterface
    return LLMInterface()


def generate_follow_up_questions(use_case_description: str, llm=None) -> FollowUpQuestionsOutput:
    """Ask the model for 2-4 option MCQs that refine ``use_case_description``.

    An empty question list is a valid outcome; a missing or malformed
    payload is not.
    """
    if not (use_case_description or "").strip():
        raise AgentorError(ErrorKind.EMPTY_INPUT, FOLLOW_UP_ERROR_MESSAGES[ErrorKind.EMPTY_INPUT])
    payload = FollowUpQuestionsInput(use_case_description=use_case_description)
    logger.info("[FLOW] generating follow-up questions (%d chars)", len(use_case_description))
    try:
        llm = llm or _default_llm()
        output = llm.generate_follow_up_questions(payload)
        if output is None:
            logger.error("[FLOW] follow-up questions: model returned no output")
            raise AgentorError(
                ErrorKind.MODEL_OUTPUT_MISSING,
                FOLLOW_UP_ERROR_MESSAGES[ErrorKind.MODEL_OUTPUT_MISSING],
            )
        if not isinstance(output, FollowUpQuestionsOutput):
            output = FollowUpQuestionsOutput.model_validate(output)
    except ValidationError as e:
        logger.error("[FLOW] follow-up questions output rejected: %s", e)
        raise AgentorError(
            ErrorKind.MODEL_OUTPUT_MISSING,
            FOLLOW_UP_ERROR_MESSAGES[ErrorKind.MODEL_OUTPUT_MISSING],
        ) from e
    except AgentorError:
        raise
    except Exception as e:
        raise _translate(e, FOLLOW_UP_ERROR_MESSAGES, "follow-up questions") from e

    logger.info("[FLOW] received %d follow-up questions", len(output.follow_up_questions))
    return output


def generate_flowchart(description: str, flowchart_image: Optional[str] = None, llm=None) -> FlowchartOutput:
    """Ask the model for a textual flowchart, optionally guided by a drawn one.

    ``flowchart_image`` must be a base64 data URI; a malformed one raises
    ``ValueError`` before any model call.
    """
    if not (description or "").strip():
        raise AgentorError(ErrorKind.EMPTY_INPUT, FLOWCHART_ERROR_MESSAGES[ErrorKind.EMPTY_INPUT])
    try:
        payload = FlowchartInput(description=description, flowchart_image=flowchart_image)
    except ValidationError as e:
        raise ValueError("The flowchart image must be a data URI of the form data:<mimetype>;base64,<data>.") from e
    logger.info("[FLOW] generating flowchart (image attached: %s)", payload.flowchart_image is not None)
    try:
        llm = llm or _default_llm()
        output = llm.generate_flowchart(payload)
        if output is None:
            logger.error("[FLOW] flowchart: model returned no output")
            raise AgentorError(
                ErrorKind.MODEL_OUTPUT_MISSING,
                FLOWCHART_ERROR_MESSAGES[ErrorKind.MODEL_OUTPUT_MISSING],
            )
        if not isinstance(output, FlowchartOutput):
            output = FlowchartOutput.model_validate(output)
    except ValidationError as e:
        logger.error("[FLOW] flowchart output rejected: %s", e)
        raise AgentorError(
            ErrorKind.MODEL_OUTPUT_MISSING,
            FLOWCHART_ERROR_MESSAGES[ErrorKind.MODEL_OUTPUT_MISSING],
        ) from e
    except AgentorError:
        raise
    except Exception as e:
        raise _translate(e, FLOWCHART_ERROR_MESSAGES, "flowchart") from e

    return output
