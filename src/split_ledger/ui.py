"""Interactive UI components for choosing group members."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import GroupMember

logger = logging.getLogger(__name__)


def member_label(member: GroupMember) -> str:
    """Display label for a member, e.g. "Alice <alice@example.com>"."""
    if member.email:
        return f"{member.name} <{member.email}>"
    return member.name


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="alc" matches "Alice"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for group members."""

    def __init__(self, members: list[GroupMember]):
        """Initialize the completer with the group's members."""
        self.members = members
        self.label_to_id = {member_label(m): m.user_id for m in members}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for label in self.label_to_id:
            if not query or fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )

    def resolve(self, text: str) -> str | None:
        """Map typed text (label, name or user ID) back to a user ID."""
        text = text.strip()
        if text in self.label_to_id:
            return self.label_to_id[text]
        for member in self.members:
            if text in (member.user_id, member.name):
                return member.user_id
        return None


def select_member_interactive(
    members: list[GroupMember], prompt: str = "Paid by: "
) -> str | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: Members to choose from
        prompt: Prompt text

    Returns:
        Selected user ID, or None to skip
    """
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(prompt, complete_while_typing=True)

            if not result:
                return None

            user_id = completer.resolve(result)
            if user_id:
                logger.info(f"User selected member: {user_id}")
                return user_id

            print("❌ Unknown member. Please select from the list or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def confirm_action(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
