from errors import ErrorKind

FOLLOW_UP_QUESTIONS_PROMPT = (
    "You are an AI assistant designed to help refine the design of AI agents. "
    "Based on the initial use case description provided by the user, generate a list of "
    "multiple-choice follow-up questions. Each question should help gather more details and "
    "clarify the agent's requirements, goals, processes, decision logic, and any relevant constraints.\n\n"
    "For each question:\n"
    "1. Provide clear question text.\n"
    "2. Provide 2 to 4 distinct answer options.\n"
    "3. Optionally, assign a category to the question (e.g., 'Goals', 'Process', 'Data', "
    "'Constraints', 'User Interaction', 'Error Handling').\n\n"
    "Use Case Description: {use_case_description}\n\n"
    "Follow-Up Questions (ensure the output strictly adheres to the defined schema, providing a list "
    "of objects, each with 'questionText', 'options' (an array of 2-4 strings), and optionally "
    "'questionCategory'). If the description is already clear, return an empty list:"
)

FLOWCHART_SYSTEM_PROMPT = (
    "You are an expert AI agent flowchart designer.\n\n"
    "You will generate a textual representation of a flowchart diagram based on the user's "
    "description of the AI agent's desired functionality."
)

FLOWCHART_PROMPT = (
    "Description: {description}\n\n"
    "Generate a textual representation of the flowchart diagram:"
)

FLOWCHART_IMAGE_NOTE = "Here is a hand-drawn flowchart provided by the user:"

NO_QUESTIONS_NOTICE = (
    "No specific follow-up questions generated. Your description might be clear enough "
    "or very brief. You can proceed to flowchart generation."
)

EMPTY_DESCRIPTION_MESSAGE = "Please describe your use case first."

IMAGE_TOO_LARGE_MESSAGE = "The flowchart image must be at most {limit} bytes."

FOLLOW_UP_ERROR_MESSAGES = {
    ErrorKind.EMPTY_INPUT: EMPTY_DESCRIPTION_MESSAGE,
    ErrorKind.MODEL_OUTPUT_MISSING: (
        "The AI model did not return any follow-up questions. "
        "Please try refining your description or try again."
    ),
    ErrorKind.MODEL_OVERLOADED: (
        "The AI model is currently overloaded and cannot generate questions. "
        "Please try again in a few moments."
    ),
    ErrorKind.INVALID_CREDENTIALS: (
        "The AI API key is not valid. Please check your configuration to generate questions."
    ),
    ErrorKind.UNKNOWN_MODEL_FAILURE: (
        "Question generation failed: {detail}. If this persists, please check the server logs for more details."
    ),
}

FLOWCHART_ERROR_MESSAGES = {
    ErrorKind.EMPTY_INPUT: "Please provide a use case description first.",
    ErrorKind.MODEL_OUTPUT_MISSING: (
        "The AI model did not return the expected output for the flowchart. "
        "Please check your input or try again."
    ),
    ErrorKind.MODEL_OVERLOADED: (
        "The AI model is currently overloaded. Please try again in a few moments."
    ),
    ErrorKind.INVALID_CREDENTIALS: (
        "The AI API key is not valid. Please check your configuration."
    ),
    ErrorKind.UNKNOWN_MODEL_FAILURE: (
        "Flowchart generation failed. If this persists, please check the server logs for more details."
    ),
}
