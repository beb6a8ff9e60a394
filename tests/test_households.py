"""Tests for the household directory."""

import pytest

from household_ledger.exceptions import HouseholdNotFoundError, LedgerError

from .factories import MEMBERS, OWNER


class TestHouseholdDirectory:
    """Membership lifecycle."""

    def test_owner_is_first_member(self, directory):
        household = directory.create_household("  Cabin  ", OWNER)

        assert household.name == "Cabin"
        assert directory.members_of(household.id) == [OWNER]
        assert directory.owner_of(household.id) == OWNER

    def test_empty_name_is_rejected(self, directory):
        with pytest.raises(LedgerError):
            directory.create_household("   ", OWNER)

    def test_fixture_household_has_all_members(self, directory, household):
        assert directory.members_of(household.id) == [OWNER, *MEMBERS]
        assert household.invited_emails == []

    def test_missing_household(self, directory):
        with pytest.raises(HouseholdNotFoundError):
            directory.members_of("nope")

    def test_invite_is_case_insensitive_and_idempotent(self, directory):
        household = directory.create_household("Cabin", OWNER)

        directory.invite_member(household.id, "Dave@Example.com")
        directory.invite_member(household.id, "dave@example.com")

        assert directory.get_household(household.id).invited_emails == [
            "dave@example.com"
        ]
        assert [h.id for h in directory.invitations_for("dave@example.com")] == [
            household.id
        ]

    def test_join_requires_invitation(self, directory):
        household = directory.create_household("Cabin", OWNER)

        with pytest.raises(LedgerError, match="No pending invitation"):
            directory.join_household(household.id, "eve", "eve@example.com")

    def test_join_moves_invitation_to_membership(self, directory):
        household = directory.create_household("Cabin", OWNER)
        directory.invite_member(household.id, "dave@example.com")

        directory.join_household(household.id, "dave", "DAVE@example.com")

        stored = directory.get_household(household.id)
        assert stored.members == [OWNER, "dave"]
        assert stored.invited_emails == []
        assert [h.id for h in directory.households_for("dave")] == [household.id]

    def test_cancel_invitation(self, directory):
        household = directory.create_household("Cabin", OWNER)
        directory.invite_member(household.id, "dave@example.com")

        directory.cancel_invitation(household.id, "dave@example.com")

        assert directory.invitations_for("dave@example.com") == []

    def test_remove_member(self, directory, household):
        directory.remove_member(household.id, "bob")

        assert "bob" not in directory.members_of(household.id)

    def test_owner_cannot_be_removed(self, directory, household):
        with pytest.raises(LedgerError, match="owner"):
            directory.remove_member(household.id, OWNER)

    def test_member_quits(self, directory, household):
        directory.quit_household(household.id, "carol")

        assert directory.households_for("carol") == []
        assert "carol" not in directory.members_of(household.id)

    def test_owner_quitting_deletes_household(self, directory, household):
        directory.quit_household(household.id, OWNER)

        with pytest.raises(HouseholdNotFoundError):
            directory.get_household(household.id)
