import logging
from typing import Dict, Optional
import uvicorn
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from time import perf_counter

import config
from agentor_builder import AgentorWizard
from blueprint import BLUEPRINT_MEDIA_TYPE
from errors import AgentorError, ErrorKind
from flows import generate_flowchart, generate_follow_up_questions
from prompts import IMAGE_TOO_LARGE_MESSAGE
from schemas import FlowchartOutput, FollowUpQuestionsOutput
from state import WizardStep

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Agentor AI Agent Designer")
agent = AgentorWizard()


def get_agent() -> AgentorWizard:
    return agent


# CORS (adjust as needed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Simple latency middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start = perf_counter()
    response = await call_next(request)
    response.headers["X-Process-Time-ms"] = str(round((perf_counter() - start) * 1000, 1))
    return response


class DescriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    use_case_description: str = Field(..., alias="useCaseDescription")


class AnswerRequest(BaseModel):
    option: str


class FlowchartTextRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    flowchart_text: str = Field(..., alias="flowchartText")


class NavigateRequest(BaseModel):
    step: WizardStep


class FlowchartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    description: str
    flowchart_image: Optional[str] = Field(default=None, alias="flowchartImage")


_MODEL_FAILURES = {
    ErrorKind.MODEL_OUTPUT_MISSING.value,
    ErrorKind.MODEL_OVERLOADED.value,
    ErrorKind.INVALID_CREDENTIALS.value,
    ErrorKind.UNKNOWN_MODEL_FAILURE.value,
}


def _session_or_raise(res: Dict) -> Dict:
    status = res.get("status")
    if status == "not_found":
        raise HTTPException(status_code=404, detail=res.get("message", "not found"))
    if status != "success":
        code = 502 if res.get("error_kind") in _MODEL_FAILURES else 400
        raise HTTPException(status_code=code, detail=res.get("message", "error"))
    return res["session"]


def _flow_error(e: AgentorError) -> HTTPException:
    code = 400 if e.kind == ErrorKind.EMPTY_INPUT else 502
    return HTTPException(status_code=code, detail=e.message)


@app.post("/sessions")
def start_session(wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.start_session())

@app.get("/sessions/{session_id}")
def get_session(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.get_session(session_id))

@app.post("/sessions/{session_id}/reset")
def reset_session(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.reset_session(session_id))

@app.put("/sessions/{session_id}/description")
def update_description(session_id: str, body: DescriptionRequest, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.update_description(session_id, body.use_case_description))

@app.post("/sessions/{session_id}/questions")
def request_questions(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    """Generate multiple-choice clarifying questions for the current description"""
    return _session_or_raise(wizard.request_questions(session_id))

@app.put("/sessions/{session_id}/answers/{question_id}")
def answer_question(session_id: str, question_id: str, body: AnswerRequest, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.answer_question(session_id, question_id, body.option))

@app.post("/sessions/{session_id}/image")
async def attach_image(session_id: str, file: UploadFile = File(...), wizard: AgentorWizard = Depends(get_agent)):
    """Attach a hand-drawn flowchart image to guide flowchart generation"""
    if file.size is not None and file.size > config.MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail=IMAGE_TOO_LARGE_MESSAGE.format(limit=config.MAX_IMAGE_BYTES))
    content = await file.read()
    return _session_or_raise(
        wizard.attach_image(session_id, content, file.content_type or "", file.filename or "flowchart")
    )

@app.get("/sessions/{session_id}/image")
def get_image(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    """Serve the attached flowchart image for preview"""
    res = wizard.get_image(session_id)
    if res.get("status") != "success":
        raise HTTPException(status_code=404, detail=res.get("message", "not found"))
    image = res["image"]
    return Response(content=image.content, media_type=image.mime_type)

@app.delete("/sessions/{session_id}/image")
def remove_image(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.remove_image(session_id))

@app.post("/sessions/{session_id}/flowchart")
def request_flowchart(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    """Generate the textual flowchart from the description, answers and image"""
    return _session_or_raise(wizard.request_flowchart(session_id))

@app.put("/sessions/{session_id}/flowchart")
def edit_flowchart(session_id: str, body: FlowchartTextRequest, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.edit_flowchart(session_id, body.flowchart_text))

@app.post("/sessions/{session_id}/navigate")
def navigate(session_id: str, body: NavigateRequest, wizard: AgentorWizard = Depends(get_agent)):
    return _session_or_raise(wizard.navigate(session_id, body.step))

@app.get("/sessions/{session_id}/export")
def export_blueprint(session_id: str, wizard: AgentorWizard = Depends(get_agent)):
    """Download the agent blueprint document"""
    res = wizard.export_blueprint(session_id)
    if res.get("status") == "not_found":
        raise HTTPException(status_code=404, detail=res.get("message", "not found"))
    if res.get("status") != "success":
        raise HTTPException(status_code=400, detail=res.get("message", "error"))
    return Response(
        content=res["content"],
        media_type=BLUEPRINT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{res["filename"]}"'},
    )


@app.post("/flows/follow-up-questions", response_model=FollowUpQuestionsOutput, response_model_by_alias=True)
def follow_up_questions_flow(body: DescriptionRequest, wizard: AgentorWizard = Depends(get_agent)):
    try:
        return generate_follow_up_questions(body.use_case_description, llm=wizard.llm)
    except AgentorError as e:
        raise _flow_error(e)

@app.post("/flows/flowchart", response_model=FlowchartOutput, response_model_by_alias=True)
def flowchart_flow(body: FlowchartRequest, wizard: AgentorWizard = Depends(get_agent)):
    try:
        return generate_flowchart(body.description, body.flowchart_image, llm=wizard.llm)
    except AgentorError as e:
        raise _flow_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
