"""Tests for interactive category selection."""

from unittest.mock import MagicMock, patch

from prompt_toolkit.document import Document

from household_ledger.models import Category
from household_ledger.ui import CategoryCompleter, fuzzy_match, select_category_interactive

CATEGORIES = [
    Category(id="c1", name="Food & Dining", emoji="🍔", user_id="me"),
    Category(id="c2", name="Groceries", emoji="🛒", user_id="me"),
    Category(id="c3", name="Travel", emoji="✈️", user_id="me"),
]


class TestFuzzyMatch:
    """Subsequence matching."""

    def test_matches_in_order(self):
        assert fuzzy_match("fd", "food & dining")
        assert fuzzy_match("gro", "groceries")

    def test_rejects_out_of_order(self):
        assert not fuzzy_match("df", "food")

    def test_empty_query_matches(self):
        assert fuzzy_match("", "anything")


class TestCategoryCompleter:
    """Completion candidates."""

    def test_filters_by_query(self):
        completer = CategoryCompleter(CATEGORIES)

        completions = list(completer.get_completions(Document("gr"), None))

        assert [c.text for c in completions] == ["Groceries"]

    def test_empty_query_lists_everything(self):
        completer = CategoryCompleter(CATEGORIES)

        completions = list(completer.get_completions(Document(""), None))

        assert len(completions) == 3


class TestSelectCategoryInteractive:
    """Prompt loop."""

    def test_no_categories_skips_prompt(self):
        with patch("household_ledger.ui.PromptSession") as session_cls:
            assert select_category_interactive([], "Coffee") is None

        session_cls.assert_not_called()

    def test_retries_until_valid(self):
        session = MagicMock()
        session.prompt.side_effect = ["Nonsense", "🛒 Groceries"]

        with patch("household_ledger.ui.PromptSession", return_value=session):
            result = select_category_interactive(CATEGORIES, "Market run")

        assert result == "c2"
        assert session.prompt.call_count == 2

    def test_interrupt_leaves_uncategorized(self):
        session = MagicMock()
        session.prompt.side_effect = KeyboardInterrupt

        with patch("household_ledger.ui.PromptSession", return_value=session):
            assert select_category_interactive(CATEGORIES, "Coffee") is None
