"""Tests for split portion reconciliation planning."""

from datetime import datetime
from decimal import Decimal

from household_ledger.models import SplitShare, Transaction
from household_ledger.split.reconciler import (
    plan_reconciliation,
    portion_changes,
    portion_document,
)

MAIN_ID = "main-1"


def make_main(**overrides):
    fields = {
        "id": MAIN_ID,
        "amount": Decimal("100.00"),
        "description": "Electricity",
        "date": datetime(2024, 2, 1, 9, 30),
        "category_id": "utilities",
        "user_id": "owner",
        "kind": "expense",
        "household_id": "house-1",
    }
    fields.update(overrides)
    return Transaction(**fields)


def make_portion(portion_id, user_id, amount):
    return Transaction(
        id=portion_id,
        amount=Decimal(str(amount)),
        description="Electricity",
        date=datetime(2024, 2, 1, 9, 30),
        user_id=user_id,
        household_id="house-1",
        is_split_portion=True,
        main_transaction_id=MAIN_ID,
    )


def share(user_id, amount):
    return SplitShare(
        user_id=user_id, amount=Decimal(str(amount)), percentage=Decimal("0")
    )


class TestPlanReconciliation:
    """Diffing desired shares against stored portions."""

    def test_first_split_creates_one_portion_per_non_owner(self):
        plan = plan_reconciliation(
            make_main(),
            [share("owner", 34), share("alice", 33), share("bob", 33)],
            existing=[],
        )

        assert [s.user_id for s in plan.creates] == ["alice", "bob"]
        assert plan.updates == []
        assert plan.deletes == []

    def test_member_change_updates_creates_and_deletes(self):
        """{alice: 40, bob: 60} -> {bob: 70, carol: 30}."""
        existing = [make_portion("p-alice", "alice", 40), make_portion("p-bob", "bob", 60)]

        plan = plan_reconciliation(
            make_main(), [share("bob", 70), share("carol", 30)], existing
        )

        assert [(u.portion_id, u.amount) for u in plan.updates] == [
            ("p-bob", Decimal("70"))
        ]
        assert [s.user_id for s in plan.creates] == ["carol"]
        assert [p.id for p in plan.deletes] == ["p-alice"]

    def test_removed_split_deletes_everything(self):
        existing = [make_portion("p-alice", "alice", 40), make_portion("p-bob", "bob", 60)]

        for desired in (None, []):
            plan = plan_reconciliation(make_main(), desired, existing)

            assert [p.id for p in plan.deletes] == ["p-alice", "p-bob"]
            assert not plan.creates
            assert not plan.updates

    def test_duplicate_portions_for_a_member_are_deleted(self):
        existing = [
            make_portion("p-alice-1", "alice", 50),
            make_portion("p-alice-2", "alice", 50),
        ]

        plan = plan_reconciliation(make_main(), [share("alice", 50)], existing)

        assert [u.portion_id for u in plan.updates] == ["p-alice-1"]
        assert [p.id for p in plan.deletes] == ["p-alice-2"]

    def test_owner_portion_is_removed(self):
        """An owner share never has a portion; a stale one is deleted."""
        existing = [make_portion("p-owner", "owner", 50)]

        plan = plan_reconciliation(
            make_main(), [share("owner", 50), share("alice", 50)], existing
        )

        assert [s.user_id for s in plan.creates] == ["alice"]
        assert [p.id for p in plan.deletes] == ["p-owner"]

    def test_zero_share_gets_no_portion(self):
        existing = [make_portion("p-bob", "bob", 10)]

        plan = plan_reconciliation(
            make_main(), [share("alice", 100), share("bob", 0)], existing
        )

        assert [s.user_id for s in plan.creates] == ["alice"]
        assert [p.id for p in plan.deletes] == ["p-bob"]

    def test_unchanged_split_is_update_only(self):
        existing = [make_portion("p-alice", "alice", 50)]

        plan = plan_reconciliation(
            make_main(), [share("owner", 50), share("alice", 50)], existing
        )

        assert not plan.is_empty
        assert not plan.creates
        assert not plan.deletes
        assert [u.portion_id for u in plan.updates] == ["p-alice"]


class TestPortionDocuments:
    """Fields written onto portions."""

    def test_new_portion_mirrors_main(self):
        main = make_main()

        document = portion_document(main, share("alice", "33.33"))

        assert document == {
            "description": "Electricity",
            "date": "2024-02-01T09:30:00",
            "category_id": "utilities",
            "kind": "expense",
            "amount": "33.33",
            "user_id": "alice",
            "household_id": "house-1",
            "main_transaction_id": MAIN_ID,
            "is_split_portion": True,
        }

    def test_changes_carry_new_main_values(self):
        main = make_main(description="Electricity (Feb)", kind="income")
        plan = plan_reconciliation(
            main, [share("alice", 25)], [make_portion("p-alice", "alice", 40)]
        )

        changes = portion_changes(main, plan.updates[0])

        assert changes["description"] == "Electricity (Feb)"
        assert changes["kind"] == "income"
        assert changes["amount"] == "25"
        assert changes["household_id"] == "house-1"
        assert "user_id" not in changes

    def test_changes_follow_household_move(self):
        main = make_main(household_id="house-2")
        plan = plan_reconciliation(
            main, [share("alice", 100)], [make_portion("p-alice", "alice", 40)]
        )

        changes = portion_changes(main, plan.updates[0])

        assert changes["household_id"] == "house-2"
