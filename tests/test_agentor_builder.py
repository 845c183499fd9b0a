from agentor_builder import AgentorWizard
from errors import ErrorKind
from llm import LLMInterface
from prompts import FLOWCHART_ERROR_MESSAGES
from tests.conftest import flowchart, questions


def _start(service, description="Help users reset their password"):
    sid = service.start_session()["session"]["session_id"]
    service.update_description(sid, description)
    return sid


def test_full_wizard_round_trip(wizard_service, fake_llm):
    fake_llm.question_results.append(questions(("Which channel?", ["Email", "SMS"])))
    fake_llm.flowchart_results.append(flowchart("graph TD; Start-->Reset"))
    sid = _start(wizard_service)

    res = wizard_service.request_questions(sid)
    assert res["status"] == "success"
    view = res["session"]
    assert view["current_step"] == "clarify"
    qid = view["follow_up_questions"][0]["questionId"]

    wizard_service.answer_question(sid, qid, "Email")
    res = wizard_service.request_flowchart(sid)

    assert res["status"] == "success"
    assert res["session"]["current_step"] == "export"
    assert fake_llm.flowchart_calls[0].description.endswith("Q: Which channel?\nA: Email\n")

    export = wizard_service.export_blueprint(sid)
    assert export["status"] == "success"
    assert export["filename"] == "agentor_ai_agent_definition.txt"
    assert 'FLOWCHART_LOGIC = "graph TD; Start-->Reset"' in export["content"]


def test_unknown_session(wizard_service):
    assert wizard_service.get_session("missing")["status"] == "not_found"
    assert wizard_service.request_questions("missing")["status"] == "not_found"
    assert wizard_service.export_blueprint("missing")["status"] == "not_found"


def test_blank_description_makes_no_model_call(wizard_service, fake_llm):
    sid = _start(wizard_service, "   ")
    assert wizard_service.request_questions(sid)["status"] == "error"
    assert wizard_service.request_flowchart(sid)["status"] == "error"
    assert fake_llm.question_calls == []
    assert fake_llm.flowchart_calls == []


def test_model_failure_is_recorded_on_session(wizard_service, fake_llm):
    fake_llm.flowchart_results.append(RuntimeError("model is overloaded"))
    sid = _start(wizard_service)

    res = wizard_service.request_flowchart(sid)

    assert res["status"] == "error"
    assert res["error_kind"] == ErrorKind.MODEL_OVERLOADED.value
    view = wizard_service.get_session(sid)["session"]
    assert view["error"] == FLOWCHART_ERROR_MESSAGES[ErrorKind.MODEL_OVERLOADED]
    assert view["is_loading_flowchart"] is False
    assert view["generated_flowchart_text"] == ""


def test_response_arriving_after_reset_is_discarded(wizard_service, fake_llm):
    sid = _start(wizard_service)

    class ResettingLLM:
        def generate_follow_up_questions(self, payload):
            wizard_service.reset_session(sid)
            return questions(("Stale?", ["a", "b"]))

    wizard_service._llm = ResettingLLM()
    wizard_service.request_questions(sid)

    view = wizard_service.get_session(sid)["session"]
    assert view["follow_up_questions"] == []
    assert view["use_case_description"] == ""
    assert view["is_loading_questions"] is False


def test_export_without_flowchart_produces_no_file(wizard_service):
    sid = _start(wizard_service)
    res = wizard_service.export_blueprint(sid)
    assert res["status"] == "error"
    assert "content" not in res


def test_default_backend_is_built_once_per_service():
    service = AgentorWizard()
    backend = service.llm
    assert isinstance(backend, LLMInterface)
    assert service.llm is backend
