"""Household directory and membership management."""

import logging

from .codec import decode_household, decode_valid, encode
from .db import HOUSEHOLDS, DocumentStore
from .exceptions import HouseholdNotFoundError, LedgerError
from .models import Household

logger = logging.getLogger(__name__)


class HouseholdDirectory:
    """Looks up and manages households stored in the document store."""

    def __init__(self, database: DocumentStore):
        """Initialize the directory."""
        self.db = database

    def get_household(self, household_id: str) -> Household:
        """
        Fetch a household.

        Raises:
            HouseholdNotFoundError: If the household doesn't exist
        """
        document = self.db.get(HOUSEHOLDS, household_id)
        if document is None:
            raise HouseholdNotFoundError(f"Household {household_id} not found")
        return decode_household(document)

    def members_of(self, household_id: str) -> list[str]:
        """Member user ids of a household, owner included."""
        return list(self.get_household(household_id).members)

    def owner_of(self, household_id: str) -> str:
        return self.get_household(household_id).owner_id

    def households_for(self, user_id: str) -> list[Household]:
        """Households the user is a member of."""
        documents = self.db.find(HOUSEHOLDS, contains={"members": user_id})
        return decode_valid(Household, documents)

    def invitations_for(self, email: str) -> list[Household]:
        """Households with a pending invitation for this email."""
        documents = self.db.find(HOUSEHOLDS, contains={"invited_emails": email})
        return decode_valid(Household, documents)

    # ========================================================================
    # Membership changes
    # ========================================================================

    def create_household(self, name: str, owner_id: str) -> Household:
        """Create a household with the owner as its first member."""
        if not name.strip():
            raise LedgerError("Household name cannot be empty")
        household = Household(
            id="", name=name.strip(), owner_id=owner_id, members=[owner_id]
        )
        household_id = self.db.create(HOUSEHOLDS, encode(household))
        logger.info(f"Created household '{household.name}' ({household_id})")
        return household.model_copy(update={"id": household_id})

    def invite_member(self, household_id: str, email: str) -> Household:
        household = self.get_household(household_id)
        email = email.strip().lower()
        if email not in household.invited_emails:
            household.invited_emails.append(email)
            self._save_membership(household)
            logger.info(f"Invited {email} to household {household_id}")
        return household

    def cancel_invitation(self, household_id: str, email: str) -> Household:
        household = self.get_household(household_id)
        email = email.strip().lower()
        if email in household.invited_emails:
            household.invited_emails.remove(email)
            self._save_membership(household)
        return household

    def join_household(self, household_id: str, user_id: str, email: str) -> Household:
        """
        Accept a pending invitation.

        Raises:
            LedgerError: If there is no invitation for this email
        """
        household = self.get_household(household_id)
        email = email.strip().lower()
        if email not in household.invited_emails:
            raise LedgerError(f"No pending invitation for {email} in {household.name}")

        household.invited_emails.remove(email)
        if user_id not in household.members:
            household.members.append(user_id)
        self._save_membership(household)
        logger.info(f"{user_id} joined household {household_id}")
        return household

    def remove_member(self, household_id: str, user_id: str) -> Household:
        household = self.get_household(household_id)
        if user_id == household.owner_id:
            raise LedgerError("The owner cannot be removed from their household")
        if user_id in household.members:
            household.members.remove(user_id)
            self._save_membership(household)
        return household

    def quit_household(self, household_id: str, user_id: str) -> None:
        """Leave a household. The owner leaving deletes it."""
        household = self.get_household(household_id)
        if household.owner_id == user_id:
            self.delete_household(household_id)
            return
        if user_id in household.members:
            household.members.remove(user_id)
            self._save_membership(household)
        logger.info(f"{user_id} left household {household_id}")

    def delete_household(self, household_id: str) -> None:
        self.db.delete(HOUSEHOLDS, household_id)
        logger.info(f"Deleted household {household_id}")

    def _save_membership(self, household: Household) -> None:
        self.db.update(
            HOUSEHOLDS,
            household.id,
            {
                "members": household.members,
                "invited_emails": household.invited_emails,
            },
        )
