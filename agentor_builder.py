import uuid
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import wizard
from blueprint import BLUEPRINT_FILENAME, render_blueprint
from errors import AgentorError, WizardError
from flows import generate_flowchart, generate_follow_up_questions
from llm import LLMInterface
from state import WizardSession, WizardStep

logger = logging.getLogger(__name__)


def session_view(session: WizardSession) -> Dict[str, Any]:
    return {
        "session_id": session.session_id,
        "created_at": session.created_at.isoformat(),
        "current_step": session.current_step.value,
        "use_case_description": session.use_case_description,
        "follow_up_questions": [q.model_dump(by_alias=True) for q in session.follow_up_questions],
        "mcq_answers": dict(session.mcq_answers),
        "flowchart_image": (
            {
                "filename": session.flowchart_image.filename,
                "mime_type": session.flowchart_image.mime_type,
                "preview_url": f"/sessions/{session.session_id}/image",
            }
            if session.flowchart_image
            else None
        ),
        "generated_flowchart_text": session.generated_flowchart_text,
        "is_loading_questions": session.is_loading_questions,
        "is_loading_flowchart": session.is_loading_flowchart,
        "can_export": bool(session.generated_flowchart_text.strip()),
        "error": session.error,
        "notice": session.notice,
    }


class AgentorWizard:
    """In-memory registry of wizard sessions.

    Model calls run outside the registry lock; their results are applied
    through the wizard transitions, which drop responses whose request token
    is no longer the latest for the session.
    """

    def __init__(self, llm=None, clock: Callable[[], datetime] = datetime.now):
        self._llm = llm
        self._clock = clock
        self._sessions: Dict[str, WizardSession] = {}
        self._lock = threading.Lock()

    @property
    def llm(self):
        """The model backend shared by every session; the OpenAI one unless injected."""
        with self._lock:
            if self._llm is None:
                self._llm = LLMInterface()
            return self._llm

    def _get(self, session_id: str) -> Optional[WizardSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def _apply(self, session_id: str, transition: Callable[[WizardSession], WizardSession]) -> Dict:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return {"status": "not_found", "message": "Session not found"}
            try:
                session = transition(session)
            except (AgentorError, WizardError) as e:
                logger.warning("[WIZARD] %s rejected: %s", session_id, e)
                return {"status": "error", "message": str(e)}
            self._sessions[session_id] = session
        return {"status": "success", "session": session_view(session)}

    def start_session(self) -> Dict:
        session_id = str(uuid.uuid4())
        session = wizard.new_session(session_id)
        with self._lock:
            self._sessions[session_id] = session
        logger.info("[WIZARD] started session %s", session_id)
        return {"status": "success", "session": session_view(session)}

    def get_session(self, session_id: str) -> Dict:
        session = self._get(session_id)
        if session is None:
            return {"status": "not_found", "message": "Session not found"}
        return {"status": "success", "session": session_view(session)}

    def reset_session(self, session_id: str) -> Dict:
        return self._apply(session_id, wizard.reset_session)

    def update_description(self, session_id: str, text: str) -> Dict:
        return self._apply(session_id, lambda s: wizard.update_description(s, text))

    def answer_question(self, session_id: str, question_id: str, option: str) -> Dict:
        return self._apply(session_id, lambda s: wizard.answer_question(s, question_id, option))

    def attach_image(self, session_id: str, content: bytes, mime_type: str, filename: str) -> Dict:
        return self._apply(session_id, lambda s: wizard.attach_flowchart_image(s, content, mime_type, filename))

    def get_image(self, session_id: str) -> Dict:
        session = self._get(session_id)
        if session is None:
            return {"status": "not_found", "message": "Session not found"}
        if session.flowchart_image is None:
            return {"status": "not_found", "message": "No flowchart image attached"}
        return {"status": "success", "image": session.flowchart_image}

    def remove_image(self, session_id: str) -> Dict:
        return self._apply(session_id, wizard.remove_flowchart_image)

    def edit_flowchart(self, session_id: str, text: str) -> Dict:
        return self._apply(session_id, lambda s: wizard.edit_flowchart_text(s, text))

    def navigate(self, session_id: str, step: WizardStep) -> Dict:
        return self._apply(session_id, lambda s: wizard.navigate(s, step))

    def request_questions(self, session_id: str) -> Dict:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return {"status": "not_found", "message": "Session not found"}
            try:
                session, token = wizard.begin_question_request(session)
            except (AgentorError, WizardError) as e:
                return {"status": "error", "message": str(e)}
            self._sessions[session_id] = session
            description = session.use_case_description

        try:
            output = generate_follow_up_questions(description, llm=self.llm)
        except AgentorError as e:
            with self._lock:
                current = self._sessions.get(session_id)
                if current is not None:
                    self._sessions[session_id] = wizard.fail_question_request(current, token, e.message)
            return {"status": "error", "message": e.message, "error_kind": e.kind.value}

        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return {"status": "not_found", "message": "Session not found"}
            current = wizard.complete_question_request(current, token, output)
            self._sessions[session_id] = current
        return {"status": "success", "session": session_view(current)}

    def request_flowchart(self, session_id: str) -> Dict:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return {"status": "not_found", "message": "Session not found"}
            try:
                session, token, payload = wizard.begin_flowchart_request(session)
            except (AgentorError, WizardError) as e:
                return {"status": "error", "message": str(e)}
            self._sessions[session_id] = session

        try:
            output = generate_flowchart(payload.description, payload.flowchart_image, llm=self.llm)
        except AgentorError as e:
            with self._lock:
                current = self._sessions.get(session_id)
                if current is not None:
                    self._sessions[session_id] = wizard.fail_flowchart_request(current, token, e.message)
            return {"status": "error", "message": e.message, "error_kind": e.kind.value}

        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return {"status": "not_found", "message": "Session not found"}
            current = wizard.complete_flowchart_request(current, token, output.flowchart_diagram)
            self._sessions[session_id] = current
        return {"status": "success", "session": session_view(current)}

    def export_blueprint(self, session_id: str) -> Dict:
        session = self._get(session_id)
        if session is None:
            return {"status": "not_found", "message": "Session not found"}
        try:
            wizard.ensure_exportable(session)
        except WizardError as e:
            return {"status": "error", "message": str(e)}

        content = render_blueprint(
            session.use_case_description,
            session.follow_up_questions,
            session.mcq_answers,
            session.generated_flowchart_text,
            self._clock(),
        )
        logger.info("[WIZARD] exported blueprint for %s (%d chars)", session_id, len(content))
        return {"status": "success", "filename": BLUEPRINT_FILENAME, "content": content}
