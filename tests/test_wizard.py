import pytest

import config
import wizard
from errors import AgentorError, ErrorKind, WizardError
from prompts import NO_QUESTIONS_NOTICE
from schemas import FollowUpQuestionsOutput, MCQ
from state import WizardStep
from tests.conftest import questions


def _with_questions(description="Help users reset their password", *items):
    session = wizard.update_description(wizard.new_session("s1"), description)
    session, token = wizard.begin_question_request(session)
    return wizard.complete_question_request(session, token, questions(*items))


def test_new_session_starts_at_describe():
    session = wizard.new_session("s1")
    assert session.current_step == WizardStep.DESCRIBE
    assert session.follow_up_questions == ()
    assert session.mcq_answers == {}


def test_blank_description_blocks_question_request():
    session = wizard.update_description(wizard.new_session("s1"), "   ")
    with pytest.raises(AgentorError) as exc:
        wizard.begin_question_request(session)
    assert exc.value.kind == ErrorKind.EMPTY_INPUT


def test_question_request_sets_loading_and_blocks_retrigger():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    loading, token = wizard.begin_question_request(session)
    assert loading.is_loading_questions
    assert token == 1
    assert not session.is_loading_questions  # input untouched
    with pytest.raises(WizardError):
        wizard.begin_question_request(loading)


def test_flowchart_request_sets_loading_and_blocks_retrigger():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    loading, token, _ = wizard.begin_flowchart_request(session)
    assert loading.is_loading_flowchart
    with pytest.raises(WizardError):
        wizard.begin_flowchart_request(loading)
    assert loading.flowchart_token == token

    done = wizard.complete_flowchart_request(loading, token, "graph TD; A-->B")
    assert done.generated_flowchart_text == "graph TD; A-->B"


def test_question_and_flowchart_requests_run_independently():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, chart_token, _ = wizard.begin_flowchart_request(session)
    session, question_token = wizard.begin_question_request(session)
    assert session.is_loading_flowchart and session.is_loading_questions

    session = wizard.complete_question_request(session, question_token, questions(("Which channel?", ["Email", "SMS"])))
    assert session.is_loading_flowchart
    assert session.generated_flowchart_text == ""

    session = wizard.complete_flowchart_request(session, chart_token, "graph TD; A-->B")

    assert session.follow_up_questions[0].question_text == "Which channel?"
    assert session.generated_flowchart_text == "graph TD; A-->B"
    assert not session.is_loading_questions
    assert not session.is_loading_flowchart


def test_completed_questions_move_to_clarify():
    session = _with_questions("desc", ("Which channel?", ["Email", "SMS"]))
    assert session.current_step == WizardStep.CLARIFY
    assert not session.is_loading_questions
    assert session.notice is None
    assert session.follow_up_questions[0].question_text == "Which channel?"


def test_empty_question_set_sets_notice():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, token = wizard.begin_question_request(session)
    session = wizard.complete_question_request(session, token, FollowUpQuestionsOutput())
    assert session.follow_up_questions == ()
    assert session.notice == NO_QUESTIONS_NOTICE
    assert session.error is None


def test_regenerating_questions_clears_all_answers():
    session = _with_questions("desc", ("A?", ["1", "2"]), ("B?", ["3", "4"]))
    for q in session.follow_up_questions:
        session = wizard.answer_question(session, q.question_id, q.options[0])
    assert len(session.mcq_answers) == 2

    session, token = wizard.begin_question_request(session)
    session = wizard.complete_question_request(session, token, questions(("C?", ["5", "6"])))

    assert session.mcq_answers == {}


def test_failed_question_request_keeps_previous_questions():
    session = _with_questions("desc", ("A?", ["1", "2"]))
    q = session.follow_up_questions[0]
    session = wizard.answer_question(session, q.question_id, "1")

    session, token = wizard.begin_question_request(session)
    session = wizard.fail_question_request(session, token, "overloaded")

    assert session.error == "overloaded"
    assert not session.is_loading_questions
    assert session.follow_up_questions[0] is q
    assert session.mcq_answers == {q.question_id: "1"}


def test_stale_question_response_is_discarded():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, old_token = wizard.begin_question_request(session)
    session = wizard.reset_session(session)
    session = wizard.update_description(session, "new desc")

    after = wizard.complete_question_request(session, old_token, questions(("Old?", ["a", "b"])))

    assert after is session
    assert after.follow_up_questions == ()


def test_reselecting_an_answer_overwrites_it():
    session = _with_questions("desc", ("Which channel?", ["Email", "SMS"]))
    qid = session.follow_up_questions[0].question_id
    session = wizard.answer_question(session, qid, "Email")
    session = wizard.answer_question(session, qid, "SMS")
    assert session.mcq_answers == {qid: "SMS"}


def test_answering_unknown_question_is_rejected():
    session = _with_questions("desc", ("Which channel?", ["Email", "SMS"]))
    with pytest.raises(WizardError):
        wizard.answer_question(session, "nope", "Email")


def test_flowchart_description_for_password_reset_scenario():
    session = _with_questions(
        "Help users reset their password",
        ("Which channel?", ["Email", "SMS"]),
    )
    first = session.follow_up_questions[0]
    session = wizard.answer_question(session, first.question_id, "Email")

    _, _, payload = wizard.begin_flowchart_request(session)

    assert payload.description == (
        "Help users reset their password\n\n"
        "Further refinement based on user's answers to clarifying questions:\n"
        "Q: Which channel?\nA: Email\n"
    )
    assert payload.flowchart_image is None


def test_flowchart_description_includes_only_answered_questions_in_order():
    qs = [MCQ(question_text=f"Q{i}?", options=["yes", "no"]) for i in range(5)]
    answers = {qs[3].question_id: "no", qs[1].question_id: "yes"}

    text = wizard.build_flowchart_description("base", qs, answers)

    assert text.count("Q: ") == 2
    assert text.index("Q: Q1?\nA: yes\n") < text.index("Q: Q3?\nA: no\n")
    assert "Q0?" not in text and "Q2?" not in text and "Q4?" not in text


def test_flowchart_description_without_answers_is_the_base_description():
    qs = [MCQ(question_text="Q?", options=["yes", "no"])]
    assert wizard.build_flowchart_description("base", qs, {}) == "base"


def test_blank_description_blocks_flowchart_without_touching_text():
    session = wizard.edit_flowchart_text(wizard.new_session("s1"), "previous chart")
    with pytest.raises(AgentorError) as exc:
        wizard.begin_flowchart_request(session)
    assert exc.value.kind == ErrorKind.EMPTY_INPUT
    assert session.generated_flowchart_text == "previous chart"


def test_flowchart_request_attaches_image():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session = wizard.attach_flowchart_image(session, b"\x89PNG", "image/png", "sketch.png")
    _, _, payload = wizard.begin_flowchart_request(session)
    assert payload.flowchart_image == "data:image/png;base64,iVBORw=="


def test_completed_flowchart_moves_to_export():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, token, _ = wizard.begin_flowchart_request(session)
    session = wizard.complete_flowchart_request(session, token, "graph TD; A-->B")
    assert session.current_step == WizardStep.EXPORT
    assert session.generated_flowchart_text == "graph TD; A-->B"
    assert not session.is_loading_flowchart


def test_failed_regeneration_keeps_previous_flowchart():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, token, _ = wizard.begin_flowchart_request(session)
    session = wizard.complete_flowchart_request(session, token, "first chart")

    session, token, _ = wizard.begin_flowchart_request(session)
    session = wizard.fail_flowchart_request(session, token, "The AI model is currently overloaded.")

    assert session.generated_flowchart_text == "first chart"
    assert session.error == "The AI model is currently overloaded."


def test_stale_flowchart_response_is_discarded():
    session = wizard.update_description(wizard.new_session("s1"), "desc")
    session, first, _ = wizard.begin_flowchart_request(session)
    session = wizard.fail_flowchart_request(session, first, "timeout")
    session, second, _ = wizard.begin_flowchart_request(session)

    session = wizard.complete_flowchart_request(session, first, "late chart")
    assert session.generated_flowchart_text == ""
    assert session.is_loading_flowchart

    session = wizard.complete_flowchart_request(session, second, "fresh chart")
    assert session.generated_flowchart_text == "fresh chart"


@pytest.mark.parametrize(
    "mime, content",
    [("application/pdf", b"%PDF"), ("image/png", b"")],
)
def test_bad_images_are_rejected(mime, content):
    with pytest.raises(WizardError):
        wizard.attach_flowchart_image(wizard.new_session("s1"), content, mime, "f")


def test_oversized_image_is_rejected(monkeypatch):
    monkeypatch.setattr(config, "MAX_IMAGE_BYTES", 4)
    session = wizard.new_session("s1")
    with pytest.raises(WizardError):
        wizard.attach_flowchart_image(session, b"12345", "image/png", "big.png")
    assert wizard.attach_flowchart_image(session, b"1234", "image/png", "ok.png").flowchart_image is not None


def test_removing_image_clears_it():
    session = wizard.attach_flowchart_image(wizard.new_session("s1"), b"img", "image/jpeg", "a.jpg")
    assert session.flowchart_image is not None
    assert wizard.remove_flowchart_image(session).flowchart_image is None


def test_navigation_guards():
    session = wizard.new_session("s1")
    with pytest.raises(WizardError):
        wizard.navigate(session, WizardStep.CLARIFY)
    with pytest.raises(WizardError):
        wizard.navigate(session, WizardStep.EXPORT)

    session = wizard.update_description(session, "desc")
    assert wizard.navigate(session, WizardStep.CLARIFY).current_step == WizardStep.CLARIFY

    session = wizard.edit_flowchart_text(session, "   ")
    with pytest.raises(WizardError):
        wizard.navigate(session, WizardStep.EXPORT)

    session = wizard.edit_flowchart_text(session, "graph")
    session = wizard.navigate(session, WizardStep.EXPORT)
    assert wizard.navigate(session, WizardStep.DESCRIBE).current_step == WizardStep.DESCRIBE


def test_export_requires_flowchart_text():
    with pytest.raises(WizardError):
        wizard.ensure_exportable(wizard.new_session("s1"))
    wizard.ensure_exportable(wizard.edit_flowchart_text(wizard.new_session("s1"), "graph"))


def test_reset_discards_everything_but_advances_tokens():
    session = _with_questions("desc", ("A?", ["1", "2"]))
    session = wizard.attach_flowchart_image(session, b"img", "image/png", "a.png")
    reset = wizard.reset_session(session)
    assert reset.session_id == session.session_id
    assert reset.use_case_description == ""
    assert reset.flowchart_image is None
    assert reset.follow_up_questions == ()
    assert reset.questions_token > session.questions_token
    assert reset.flowchart_token > session.flowchart_token
