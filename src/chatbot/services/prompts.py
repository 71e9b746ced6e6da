from __future__ import annotations

from ..domain.chat_models import RequestHints


ARTIFACTS_PROMPT = """\
Artifacts is a special user interface mode that helps users with writing, editing, and other content creation tasks. When artifact is open, it is on the right side of the screen, while the conversation is on the left side. When creating or updating documents, changes are reflected in real-time on the artifacts and visible to the user.

DO NOT UPDATE DOCUMENTS IMMEDIATELY AFTER CREATING THEM. WAIT FOR USER FEEDBACK OR REQUEST TO UPDATE IT.

This is a guide for using artifacts tools: `createDocument` and `updateDocument`, which render content on a artifacts beside the conversation.

**When to use `createDocument`:**
- For substantial content (>10 lines)
- For content users will likely save/reuse (emails, essays, etc.)
- When explicitly requested to create a document

**When NOT to use `createDocument`:**
- For informational/explanatory content
- For conversational responses
- When asked to keep it in chat

**Using `updateDocument`:**
- Default to full document rewrites for major changes
- Use targeted updates only for specific, isolated changes
- Follow user instructions for which parts to modify

**When NOT to use `updateDocument`:**
- Immediately after creating a document

Use `createChart` when the user asks to visualize numbers: pass the rows, the chart type and which keys hold the x and y values.

Do not update document right after creating it. Wait for user feedback or request to update it.
"""

REGULAR_PROMPT = "You are a friendly assistant! Keep your responses concise and helpful."

TITLE_PROMPT = """\
- you will generate a short title based on the first message a user begins a conversation with
- ensure it is not more than 80 characters long
- the title should be a summary of the user's message
- do not use quotes or colons"""

TEXT_CREATE_PROMPT = "Write about the given topic. Markdown is supported. Use headings wherever appropriate."

SUGGESTIONS_PROMPT = (
    "You are a help writing assistant. Given a piece of writing, please offer suggestions to improve "
    "the piece of writing and describe the change. It is very important for the edits to contain full "
    "sentences instead of just words. Max 5 suggestions."
)


def request_prompt_from_hints(hints: RequestHints) -> str:
    return (
        "About the origin of user's request:\n"
        f"- lat: {hints.latitude}\n"
        f"- lon: {hints.longitude}\n"
        f"- city: {hints.city}\n"
        f"- country: {hints.country}\n"
    )


def system_prompt(selected_chat_model: str, hints: RequestHints) -> str:
    hints_prompt = request_prompt_from_hints(hints)
    if selected_chat_model == "chat-model-reasoning":
        return f"{REGULAR_PROMPT}\n\n{hints_prompt}"
    return f"{REGULAR_PROMPT}\n\n{hints_prompt}\n\n{ARTIFACTS_PROMPT}"


def update_document_prompt(current_content: str, kind: str) -> str:
    if kind == "text":
        intro = "Improve the following contents of the document based on the given prompt."
    elif kind == "chart":
        intro = "Improve the following chart configuration based on the given prompt."
    else:
        intro = ""
    return f"{intro}\n\n{current_content}\n"
