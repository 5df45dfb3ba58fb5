"""System instructions and prompt assembly for upstream calls."""

from kernelbot.context import ContextBundle
from kernelbot.errors import DEFAULT_CONTACT_EMAIL

BASE_INSTRUCTIONS = """You are Kernel, the official AI assistant for {event_name}. You help participants with questions about the hackathon in a friendly and professional manner.

INSTRUCTIONS:
- Provide clear, direct answers based on the event information below
- Keep responses concise and conversational - answer only what was asked
- Use 1-2 sentences for simple questions, expand only when necessary
- Avoid unnecessary emojis - use sparingly (max 1-2 per response, only when it adds value)
- If information is missing from the data, briefly acknowledge it and provide the contact email: {contact}
- For theme questions, note it will be announced closer to the event date
- Focus on answering the specific question asked, not everything about the hackathon
- When users ask who you are, introduce yourself as "Kernel, your AI assistant for {event_name}\""""

GENERAL_KNOWLEDGE_INSTRUCTIONS = """
The question below is general knowledge, not about the event. Answer it briefly from your own knowledge, then offer to help with anything about {event_name}."""

EMPTY_RESPONSE_MESSAGE = "Sorry, I could not process your question. Please try rephrasing it, or contact {contact}."


def build_system_context(
    bundle: ContextBundle,
    event_name: str = "the hackathon",
    contact: str = DEFAULT_CONTACT_EMAIL,
) -> str:
    """Build the system section of a prompt from the selected bundle.

    Args:
        bundle: Event data selected for the query
        event_name: Event name used in the persona
        contact: Human contact fallback

    Returns:
        Base instructions followed by the bundle
    """
    parts = [BASE_INSTRUCTIONS.format(event_name=event_name, contact=contact)]
    if bundle.is_general_knowledge:
        parts.append(GENERAL_KNOWLEDGE_INSTRUCTIONS.format(event_name=event_name))

    formatted = bundle.format_for_prompt()
    if formatted:
        parts.append(formatted)

    return "\n\n".join(parts)
