import logging
from typing import Any, Dict, List, Optional, Type

import openai
from pydantic import BaseModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

import config
from errors import ModelCallError, ModelErrorKind
from prompts import FLOWCHART_IMAGE_NOTE, FLOWCHART_PROMPT, FLOWCHART_SYSTEM_PROMPT, FOLLOW_UP_QUESTIONS_PROMPT
from schemas import FlowchartInput, FlowchartOutput, FollowUpQuestionsInput, FollowUpQuestionsOutput

logger = logging.getLogger(__name__)

_OVERLOADED_STATUS_CODES = {503, 529}


def model_error_kind(exc: Exception) -> ModelErrorKind:
    """Map an OpenAI SDK exception onto the structured backend error kind."""
    if isinstance(exc, openai.AuthenticationError):
        return ModelErrorKind.AUTH_FAILED
    if isinstance(exc, openai.RateLimitError):
        return ModelErrorKind.OVERLOADED
    if isinstance(exc, openai.APIStatusError) and exc.status_code in _OVERLOADED_STATUS_CODES:
        return ModelErrorKind.OVERLOADED
    return ModelErrorKind.OTHER


class LLMInterface:
    """OpenAI-backed model backend for the two Agentor prompts.

    Each method performs exactly one model call and returns the parsed
    schema object, or ``None`` when the model produced nothing that
    validates against the output schema.
    """

    def __init__(self, model_name: str = config.OPENAI_MODEL, model: Optional[Any] = None):
        self.model_name = model_name
        self._model = model
        self.questions_prompt = ChatPromptTemplate.from_template(FOLLOW_UP_QUESTIONS_PROMPT)

    @property
    def model(self):
        """The chat model; built on the first call, inside the call's error handling."""
        if self._model is None:
            self._model = ChatOpenAI(
                model=self.model_name,
                temperature=config.TEMPERATURE,
                timeout=config.REQUEST_TIMEOUT,
                max_retries=0,
            )
        return self._model

    def _invoke_structured(self, messages: List[BaseMessage], schema: Type[BaseModel]) -> Optional[BaseModel]:
        try:
            runnable = self.model.with_structured_output(schema, method="function_calling", include_raw=True)
            result: Dict[str, Any] = runnable.invoke(messages)
        except openai.OpenAIError as e:
            raise ModelCallError(model_error_kind(e), str(e)) from e

        if result.get("parsing_error") is not None:
            logger.warning("[LLM] %s output failed validation: %s", schema.__name__, result["parsing_error"])
            return None
        return result.get("parsed")

    def generate_follow_up_questions(self, payload: FollowUpQuestionsInput) -> Optional[FollowUpQuestionsOutput]:
        messages = self.questions_prompt.format_messages(use_case_description=payload.use_case_description)
        return self._invoke_structured(messages, FollowUpQuestionsOutput)

    def generate_flowchart(self, payload: FlowchartInput) -> Optional[FlowchartOutput]:
        text = FLOWCHART_PROMPT.format(description=payload.description)
        if payload.flowchart_image:
            content: Any = [
                {"type": "text", "text": text},
                {"type": "text", "text": FLOWCHART_IMAGE_NOTE},
                {"type": "image_url", "image_url": {"url": payload.flowchart_image}},
            ]
        else:
            content = text
        messages = [SystemMessage(content=FLOWCHART_SYSTEM_PROMPT), HumanMessage(content=content)]
        return self._invoke_structured(messages, FlowchartOutput)
