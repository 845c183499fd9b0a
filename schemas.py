import uuid
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.json_schema import SkipJsonSchema

DATA_URI_PATTERN = r"^data:[\w.+-]+/[\w.+-]+;base64,[A-Za-z0-9+/]+={0,2}$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MCQ(_CamelModel):
    question_text: str = Field(
        ...,
        alias="questionText",
        description="The text of the multiple-choice question.",
    )
    options: List[str] = Field(
        ...,
        min_length=2,
        max_length=4,
        description="A list of 2 to 4 options for the question.",
    )
    question_category: Optional[str] = Field(
        default=None,
        alias="questionCategory",
        description="An optional category for the question, e.g., 'Goals', 'Process', 'Data', 'Constraints'.",
    )
    # Generated here, never by the model; answers are keyed on it.
    question_id: SkipJsonSchema[str] = Field(
        default_factory=lambda: uuid.uuid4().hex,
        alias="questionId",
    )

    @field_validator("question_text")
    @classmethod
    def _question_text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("questionText must not be blank")
        return v

    @field_validator("options")
    @classmethod
    def _options_not_blank(cls, v: List[str]) -> List[str]:
        if any(not option.strip() for option in v):
            raise ValueError("options must not contain blank entries")
        return v

    @field_validator("question_category")
    @classmethod
    def _blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class FollowUpQuestionsInput(_CamelModel):
    use_case_description: str = Field(
        ...,
        alias="useCaseDescription",
        description="A description of the desired AI agent use case.",
    )

    @field_validator("use_case_description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("useCaseDescription must not be blank")
        return v


class FollowUpQuestionsOutput(_CamelModel):
    """A list of multiple-choice follow-up questions to refine the agent design."""

    follow_up_questions: List[MCQ] = Field(
        default_factory=list,
        alias="followUpQuestions",
        description="Each question should have question text, 2-4 options, and an optional category.",
    )


class FlowchartInput(_CamelModel):
    description: str = Field(
        ...,
        description="A textual description of the desired AI agent functionality.",
    )
    flowchart_image: Optional[str] = Field(
        default=None,
        alias="flowchartImage",
        pattern=DATA_URI_PATTERN,
        description="An optional hand-drawn flowchart as a data URI: 'data:<mimetype>;base64,<encoded_data>'.",
    )

    @field_validator("description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be blank")
        return v


class FlowchartOutput(_CamelModel):
    """A textual representation of the flowchart diagram."""

    flowchart_diagram: str = Field(
        ...,
        alias="flowchartDiagram",
        description="A textual representation of the flowchart diagram.",
    )
