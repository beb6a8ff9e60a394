"""Tests for category management."""

import pytest

from household_ledger.categories import DEFAULT_CATEGORIES, CategoryService
from household_ledger.exceptions import CategoryNotFoundError


@pytest.fixture
def categories(db):
    return CategoryService(db)


class TestCategoryService:
    """Category CRUD and defaults."""

    def test_defaults_are_created_once(self, categories):
        created = categories.create_default_categories("me")
        again = categories.create_default_categories("me")

        assert len(created) == len(DEFAULT_CATEGORIES) == 14
        assert all(c.is_default for c in created)
        assert [c.id for c in again] == [c.id for c in created]

    def test_defaults_skipped_when_user_has_categories(self, categories):
        categories.add_category("me", "Pets", "🐶")

        result = categories.create_default_categories("me")

        assert [c.name for c in result] == ["Pets"]

    def test_categories_are_per_user(self, categories):
        categories.add_category("me", "Pets")
        categories.add_category("you", "Garden")

        assert [c.name for c in categories.list_categories("you")] == ["Garden"]

    def test_update_only_touches_display_fields(self, categories):
        category = categories.add_category("me", "Pets", "🐶")

        updated = categories.update_category(
            category.id, name="Pet care", color="#0a0", user_id="someone-else"
        )

        assert updated.name == "Pet care"
        assert updated.color == "#0a0"
        assert updated.user_id == "me"

    def test_update_missing(self, categories):
        with pytest.raises(CategoryNotFoundError):
            categories.update_category("nope", name="x")

    def test_delete(self, categories):
        category = categories.add_category("me", "Pets")

        categories.delete_category(category.id)

        with pytest.raises(CategoryNotFoundError):
            categories.get_category(category.id)
