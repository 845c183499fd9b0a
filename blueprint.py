"""
Blueprint export.

Renders the accumulated wizard inputs into a downloadable document. The
document is a syntactically valid Python module: the raw inputs appear as
comment blocks, and again as escaped single-line string literals wired into
an illustrative LangGraph scaffold.
"""
import re
from datetime import datetime
from string import Template
from typing import Dict, List, Sequence, Tuple

from schemas import MCQ

BLUEPRINT_FILENAME = "agentor_ai_agent_definition.txt"
BLUEPRINT_MEDIA_TYPE = "text/plain; charset=utf-8"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def _escape_controls(value: str) -> str:
    return _CONTROL_CHARS.sub(lambda m: "\\x%02x" % ord(m.group(0)), value)


def escape_literal(value: str, prompt_template: bool = False) -> str:
    """Escape ``value`` for a double-quoted, single-line Python string.

    With ``prompt_template`` the braces are doubled as well, so the literal
    can be handed to a LangChain prompt template without creating variables.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    if prompt_template:
        escaped = escaped.replace("{", "{{").replace("}", "}}")
    escaped = escaped.replace("\r", "\\r").replace("\n", "\\n")
    return _escape_controls(escaped)


def comment_block(value: str) -> str:
    lines = value.splitlines() or [""]
    return "\n".join(("# " + _escape_controls(line)).rstrip() for line in lines)


def answered_pairs(questions: Sequence[MCQ], answers: Dict[str, str]) -> List[Tuple[str, str]]:
    return [(q.question_text, answers[q.question_id]) for q in questions if answers.get(q.question_id)]


def unique_keys(texts: Sequence[str]) -> List[str]:
    """Number repeated question texts so each answer keeps its own dict key."""
    keys: List[str] = []
    for text in texts:
        key, n = text, 1
        while key in keys:
            n += 1
            key = f"{text} ({n})"
        keys.append(key)
    return keys


def agent_system_prompt(use_case_description: str, flowchart_text: str) -> str:
    return (
        "You are an AI agent built for the following use case:\n"
        f"{use_case_description}\n\n"
        "Follow this flowchart when deciding what to do next:\n"
        f"{flowchart_text}"
    )


_DOCUMENT = Template('''\
# Agentor AI Agent Definition (LangGraph Python Conceptual Structure)
# Generated on: $generated_at

# == Use Case Description ==
$description_comment

# == MCQ Answers (Refinements) ==
$answers_comment

# == Flowchart Definition ==
$flowchart_comment

# --- LangGraph Python Implementation Blueprint ---
# A starting point for structuring the agent with LangGraph. To make it
# runnable you will need to:
# 1. Parse FLOWCHART_LOGIC into nodes and edges.
# 2. Replace the placeholder nodes with real ones from your flowchart.
# 3. Add any LangChain tools the agent needs.

from typing import Any, Dict, Literal, Optional, TypedDict

from langchain_core.prompts import ChatPromptTemplate
from langgraph.graph import END, StateGraph

USE_CASE_DESCRIPTION = "$description_literal"
FLOWCHART_LOGIC = "$flowchart_literal"
MCQ_ANSWERS: Dict[str, str] = $answers_literal

SYSTEM_PROMPT_TEMPLATE = "$system_prompt_literal"

agent_prompt = ChatPromptTemplate.from_messages([
    ("system", SYSTEM_PROMPT_TEMPLATE),
    ("human", "{user_input}"),
])


class AgentState(TypedDict):
    use_case_description: str
    mcq_answers: Dict[str, str]
    flowchart_logic: str
    user_input: Optional[str]
    parsed_flowchart: Optional[Dict[str, Any]]
    scratchpad: str
    final_response: Optional[str]


def parse_flowchart(flowchart_text: str) -> Dict[str, Any]:
    """Turn the textual flowchart into {"nodes": [...], "edges": [...], "entry_point": ...}."""
    return {"nodes": [], "edges": [], "entry_point": "entry"}


def entry_node(state: AgentState) -> Dict[str, Any]:
    return {
        "parsed_flowchart": parse_flowchart(state["flowchart_logic"]),
        "scratchpad": state.get("scratchpad", "") + "\\nAgent initialized.",
    }


def process_step_node(state: AgentState) -> Dict[str, Any]:
    # Replace with the action of the current flowchart node (LLM call, tool, ...)
    messages = agent_prompt.format_messages(user_input=state.get("user_input") or "")
    return {"scratchpad": state.get("scratchpad", "") + f"\\nPrepared {len(messages)} messages."}


def route_after_step(state: AgentState) -> Literal["process_step", "final_output"]:
    # Decision nodes of the flowchart become conditions here
    return "final_output"


def final_output_node(state: AgentState) -> Dict[str, Any]:
    return {"final_response": state.get("final_response") or "No response was generated."}


def build_agent():
    builder = StateGraph(AgentState)
    builder.add_node("entry", entry_node)
    builder.add_node("process_step", process_step_node)
    builder.add_node("final_output", final_output_node)
    builder.set_entry_point("entry")
    builder.add_edge("entry", "process_step")
    builder.add_conditional_edges("process_step", route_after_step)
    builder.add_edge("final_output", END)
    return builder.compile()


if __name__ == "__main__":
    agent = build_agent()
    result = agent.invoke({
        "use_case_description": USE_CASE_DESCRIPTION,
        "mcq_answers": MCQ_ANSWERS,
        "flowchart_logic": FLOWCHART_LOGIC,
        "user_input": "Hello!",
        "parsed_flowchart": None,
        "scratchpad": "",
        "final_response": None,
    })
    print("Final Response:", result.get("final_response"))
''')


def render_blueprint(
    use_case_description: str,
    questions: Sequence[MCQ],
    answers: Dict[str, str],
    flowchart_text: str,
    generated_at: datetime,
) -> str:
    pairs = answered_pairs(questions, answers)
    answers_comment = "\n".join(
        comment_block(f"Q: {question}\nA: {answer}") for question, answer in pairs
    ) or "# (no clarifying questions answered)"
    keys = unique_keys([question for question, _ in pairs])
    answers_literal = "{" + ", ".join(
        f'"{escape_literal(key)}": "{escape_literal(answer)}"' for key, (_, answer) in zip(keys, pairs)
    ) + "}"

    return _DOCUMENT.substitute(
        generated_at=generated_at.isoformat(),
        description_comment=comment_block(use_case_description),
        answers_comment=answers_comment,
        flowchart_comment=comment_block(flowchart_text),
        description_literal=escape_literal(use_case_description),
        flowchart_literal=escape_literal(flowchart_text),
        answers_literal=answers_literal,
        system_prompt_literal=escape_literal(
            agent_system_prompt(use_case_description, flowchart_text), prompt_template=True
        ),
    )
