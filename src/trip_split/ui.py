"""Interactive UI components for picking people in a group."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Person

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="mcl" matches "Michael"
        query="jms" matches "James"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class PersonCompleter(Completer):
    """Fuzzy search completer for the people in a group."""

    def __init__(self, people: list[Person]):
        """Initialize the completer with the group roster."""
        self.people = people

        # Names are not unique, so repeated names get a short id suffix
        counts: dict[str, int] = {}
        for person in people:
            counts[person.name] = counts.get(person.name, 0) + 1

        self.label_to_id = {}
        for person in people:
            label = person.name
            if counts[person.name] > 1:
                label = f"{person.name} ({person.id[:8]})"
            self.label_to_id[label] = person.id

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for label in self.label_to_id:
            if not query:
                yield Completion(text=label, start_position=0, display=label)
            elif fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )


def select_person_interactive(people: list[Person], prompt: str = "Paid by") -> str | None:
    """
    Interactive person selection with fuzzy search.

    Args:
        people: The group roster
        prompt: Label shown before the input

    Returns:
        Selected person id, or None to cancel
    """
    if not people:
        return None

    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = PersonCompleter(people)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(f"{prompt}: ", complete_while_typing=True)

            if not result:
                return None

            person_id = completer.label_to_id.get(result.strip())
            if person_id:
                logger.info(f"User selected person: {result.strip()}")
                return person_id

            print("❌ Unknown person. Please select from the list or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None
