"""Interactive prompts for the command line."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Category

logger = logging.getLogger(__name__)


def category_label(category: Category) -> str:
    return f"{category.emoji} {category.name}"


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="gro" matches "groceries"
        query="fd" matches "food & dining"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class CategoryCompleter(Completer):
    """Fuzzy search completer for categories."""

    def __init__(self, categories: list[Category]):
        """Initialize the completer with available categories."""
        self.categories = categories
        self.name_to_id = {}
        for cat in categories:
            self.name_to_id[category_label(cat)] = cat.id
            self.name_to_id[cat.name] = cat.id

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()
        for cat in self.categories:
            label = category_label(cat)
            if not query or fuzzy_match(query, cat.name.lower()):
                yield Completion(
                    text=cat.name,
                    start_position=-len(document.text),
                    display=label,
                )


def select_category_interactive(
    categories: list[Category], description: str
) -> str | None:
    """
    Interactive category selection with fuzzy search.

    Args:
        categories: The user's categories
        description: Description of the transaction being categorized

    Returns:
        Selected category ID, or None to leave it uncategorized
    """
    if not categories:
        return None

    print(f"\nCategorize: {description}")
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = CategoryCompleter(categories)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt("Category: ", complete_while_typing=True)
            if not result:
                return None

            category_id = completer.name_to_id.get(result.strip())
            if category_id:
                logger.info(f"User selected category: {result.strip()}")
                return category_id

            print("Invalid category. Pick one from the list or press Tab to complete.")

    except (KeyboardInterrupt, EOFError):
        return None
