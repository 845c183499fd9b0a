import base64
from enum import Enum
from datetime import datetime
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from schemas import MCQ


class WizardStep(Enum):
    DESCRIBE = "describe"
    CLARIFY = "clarify"
    EXPORT = "export"


@dataclass(frozen=True)
class FlowchartImage:
    filename: str
    mime_type: str
    data_uri: str

    @classmethod
    def from_bytes(cls, content: bytes, mime_type: str, filename: str = "flowchart") -> "FlowchartImage":
        encoded = base64.b64encode(content).decode("ascii")
        return cls(filename=filename, mime_type=mime_type, data_uri=f"data:{mime_type};base64,{encoded}")

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.data_uri.split(",", 1)[1])


@dataclass(frozen=True)
class WizardSession:
    session_id: str
    created_at: datetime = field(default_factory=datetime.now)
    current_step: WizardStep = WizardStep.DESCRIBE

    # User input
    use_case_description: str = ""
    follow_up_questions: Tuple[MCQ, ...] = ()
    mcq_answers: Dict[str, str] = field(default_factory=dict)  # question_id -> option
    flowchart_image: Optional[FlowchartImage] = None
    generated_flowchart_text: str = ""

    # Transient UI flags
    is_loading_questions: bool = False
    is_loading_flowchart: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None

    # Latest issued request per operation; older completions are discarded
    questions_token: int = 0
    flowchart_token: int = 0
