"""Shared fixtures for Household Ledger tests."""

import pytest

from household_ledger.db import Database
from household_ledger.exceptions import BackendUnavailableError
from household_ledger.households import HouseholdDirectory
from household_ledger.split.service import LedgerService

from .factories import MEMBERS, OWNER

class FlakyDatabase(Database):
    """Database that fails selected portion writes."""

    def __init__(self, db_path):
        super().__init__(db_path)
        self.fail_create_for: set[str] = set()
        self.fail_update_ids: set[str] = set()
        self.fail_delete_ids: set[str] = set()

    def create(self, collection, fields):
        if fields.get("user_id") in self.fail_create_for and fields.get(
            "is_split_portion"
        ):
            raise BackendUnavailableError(f"create failed for {fields['user_id']}")
        return super().create(collection, fields)

    def update(self, collection, document_id, fields):
        if document_id in self.fail_update_ids:
            raise BackendUnavailableError(f"update failed for {document_id}")
        return super().update(collection, document_id, fields)

    def delete(self, collection, document_id):
        if document_id in self.fail_delete_ids:
            raise BackendUnavailableError(f"delete failed for {document_id}")
        return super().delete(collection, document_id)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    database = FlakyDatabase(tmp_path / "ledger.db")
    yield database
    database.close()


@pytest.fixture
def directory(db):
    return HouseholdDirectory(db)


@pytest.fixture
def household(directory):
    """A household owned by OWNER with alice, bob and carol as members."""
    created = directory.create_household("Flat 3B", OWNER)
    for member in MEMBERS:
        email = f"{member}@example.com"
        directory.invite_member(created.id, email)
        directory.join_household(created.id, member, email)
    return directory.get_household(created.id)


@pytest.fixture
def service(db, directory):
    """Create a LedgerService instance."""
    return LedgerService(db, directory)
