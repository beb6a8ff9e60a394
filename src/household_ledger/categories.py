"""Category management."""

import logging

from .codec import decode_category, decode_valid, encode
from .db import CATEGORIES, DocumentStore
from .exceptions import CategoryNotFoundError, DocumentNotFoundError
from .models import Category

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: list[tuple[str, str]] = [
    ("Food & Dining", "🍔"),
    ("Transportation", "🚗"),
    ("Housing", "🏠"),
    ("Utilities", "💡"),
    ("Entertainment", "🎬"),
    ("Shopping", "🛍️"),
    ("Health", "🏥"),
    ("Travel", "✈️"),
    ("Education", "📚"),
    ("Personal Care", "💇"),
    ("Gifts & Donations", "🎁"),
    ("Salary", "💰"),
    ("Investments", "📈"),
    ("Other Income", "💵"),
]


class CategoryService:
    """Manages a user's categories."""

    def __init__(self, database: DocumentStore):
        """Initialize the service."""
        self.db = database

    def list_categories(self, user_id: str) -> list[Category]:
        return decode_valid(Category, self.db.find(CATEGORIES, user_id=user_id))

    def get_category(self, category_id: str) -> Category:
        document = self.db.get(CATEGORIES, category_id)
        if document is None:
            raise CategoryNotFoundError(f"Category {category_id} not found")
        return decode_category(document)

    def add_category(
        self,
        user_id: str,
        name: str,
        emoji: str = "❓",
        color: str | None = None,
        is_default: bool = False,
    ) -> Category:
        category = Category(
            id="",
            name=name.strip(),
            emoji=emoji,
            user_id=user_id,
            color=color,
            is_default=is_default,
        )
        category_id = self.db.create(CATEGORIES, encode(category))
        logger.info(f"Added category '{category.name}' for {user_id}")
        return category.model_copy(update={"id": category_id})

    def update_category(self, category_id: str, **changes) -> Category:
        """Update name, emoji or color of a category."""
        allowed = {k: v for k, v in changes.items() if k in {"name", "emoji", "color"}}
        try:
            self.db.update(CATEGORIES, category_id, allowed)
        except DocumentNotFoundError as e:
            raise CategoryNotFoundError(f"Category {category_id} not found") from e
        return self.get_category(category_id)

    def delete_category(self, category_id: str) -> None:
        """Delete a category. Its transactions fall back to Unknown."""
        self.db.delete(CATEGORIES, category_id)

    def create_default_categories(self, user_id: str) -> list[Category]:
        """
        Seed the default categories for a new user.

        Does nothing when the user already has categories.
        """
        existing = self.list_categories(user_id)
        if existing:
            logger.debug(f"{user_id} already has {len(existing)} categories")
            return existing

        created = [
            self.add_category(user_id, name, emoji, is_default=True)
            for name, emoji in DEFAULT_CATEGORIES
        ]
        logger.info(f"Created {len(created)} default categories for {user_id}")
        return created
