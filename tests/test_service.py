"""Tests for GroupService layer."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from trip_split.config import Settings
from trip_split.db import Database
from trip_split.demo import create_demo_group
from trip_split.exceptions import (
    GroupNotFoundError,
    InvalidGroupError,
    InvalidTransactionError,
    PersonNotFoundError,
    TransactionNotFoundError,
)
from trip_split.service import GroupService, find_person_name


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings that do not seed a demo group."""
    return Settings(database_path=tmp_path / "test.db", seed_demo_group=False)


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_db, mock_settings):
    """Create a GroupService instance."""
    return GroupService(mock_db, mock_settings)


@pytest.fixture
def trip(service):
    """Create a group with Alice, Bob and Carol, returning their ids."""
    group_id = service.add_group("Ski trip")
    return {
        "group": group_id,
        "alice": service.add_person(group_id, "Alice"),
        "bob": service.add_person(group_id, "Bob"),
        "carol": service.add_person(group_id, "Carol"),
    }


def debt_set(service, group_id):
    """Order-independent view of a group's debts."""
    return {
        (d.from_person_id, d.to_person_id, d.amount)
        for d in service.calculate_debts(group_id)
    }


class TestDemoSeeding:
    """Tests for first-run seeding."""

    def test_seeds_demo_group_when_store_empty(self, tmp_path):
        """An empty store gets the demo group, saved once."""
        repository = MagicMock()
        repository.load.return_value = []
        settings = Settings(database_path=tmp_path / "unused.db")

        service = GroupService(repository, settings)

        assert [g.name for g in service.list_groups()] == ["Demo Trip"]
        repository.save.assert_called_once_with(service.groups)

    def test_does_not_seed_when_disabled(self, tmp_path):
        """Seeding can be switched off."""
        repository = MagicMock()
        repository.load.return_value = []
        settings = Settings(database_path=tmp_path / "unused.db", seed_demo_group=False)

        service = GroupService(repository, settings)

        assert service.list_groups() == []
        repository.save.assert_not_called()

    def test_does_not_seed_over_existing_groups(self, tmp_path):
        """Existing data is never replaced by the demo."""
        existing = create_demo_group().model_copy(update={"name": "Mine"})
        repository = MagicMock()
        repository.load.return_value = [existing]
        settings = Settings(database_path=tmp_path / "unused.db")

        service = GroupService(repository, settings)

        assert service.list_groups() == [existing]
        repository.save.assert_not_called()

    def test_demo_group_debts(self):
        """The demo trip settles into three 60.00 debts."""
        group = create_demo_group()
        ids = {p.name: p.id for p in group.people}
        repository = MagicMock()
        repository.load.return_value = [group]
        service = GroupService(repository, MagicMock(seed_demo_group=False))

        assert debt_set(service, group.id) == {
            (ids["Andrew"], ids["Michael"], Decimal("60.00")),
            (ids["Andrew"], ids["James"], Decimal("60.00")),
            (ids["Michael"], ids["James"], Decimal("60.00")),
        }


class TestGroups:
    """Tests for group operations."""

    def test_add_group_persists(self, service, mock_db):
        """New groups are saved immediately."""
        group_id = service.add_group("Beach")

        (stored,) = mock_db.load()
        assert stored.id == group_id
        assert stored.name == "Beach"
        assert stored.people == ()

    def test_add_group_rejects_blank_name(self, service):
        """Groups need a name."""
        with pytest.raises(InvalidGroupError):
            service.add_group("   ")

    def test_delete_group(self, service, trip, mock_db):
        """Deleting removes the group from the store."""
        service.delete_group(trip["group"])

        assert service.get_group_by_id(trip["group"]) is None
        assert mock_db.load() == []

    def test_delete_unknown_group(self, service):
        """Deleting a missing group raises."""
        with pytest.raises(GroupNotFoundError):
            service.delete_group("missing")

    def test_require_group(self, service):
        """require_group raises with the id in the message."""
        with pytest.raises(GroupNotFoundError, match="missing"):
            service.require_group("missing")


class TestPeople:
    """Tests for roster operations."""

    def test_add_person_keeps_insertion_order(self, service, trip):
        """People are listed in the order they were added."""
        group = service.require_group(trip["group"])
        assert [p.name for p in group.people] == ["Alice", "Bob", "Carol"]

    def test_add_person_rejects_blank_name(self, service, trip):
        """People need a name."""
        with pytest.raises(InvalidGroupError):
            service.add_person(trip["group"], "")

    def test_add_person_to_unknown_group(self, service):
        """Adding to a missing group raises."""
        with pytest.raises(GroupNotFoundError):
            service.add_person("missing", "Alice")

    def test_resolve_person_by_id_or_name(self, service, trip):
        """People can be referenced by id or case-insensitive name."""
        group = service.require_group(trip["group"])

        assert service.resolve_person(group, trip["bob"]).name == "Bob"
        assert service.resolve_person(group, "carol").id == trip["carol"]

    def test_resolve_unknown_person(self, service, trip):
        """Unknown references raise PersonNotFoundError."""
        group = service.require_group(trip["group"])
        with pytest.raises(PersonNotFoundError):
            service.resolve_person(group, "Dave")

    def test_resolve_ambiguous_name(self, service, trip):
        """Duplicate names must be referenced by id."""
        service.add_person(trip["group"], "Alice")
        group = service.require_group(trip["group"])

        with pytest.raises(InvalidGroupError, match="matches 2 people"):
            service.resolve_person(group, "Alice")

    def test_find_person_name(self, service, trip):
        """Dangling ids display as Unknown."""
        group = service.require_group(trip["group"])

        assert find_person_name(group, trip["alice"]) == "Alice"
        assert find_person_name(group, "ghost") == "Unknown"


class TestTransactions:
    """Tests for transaction operations."""

    def test_add_transaction_and_compute_debts(self, service, trip):
        """Alice pays 120 for Alice and Bob: Bob owes Alice 60.00."""
        service.add_transaction(
            trip["group"],
            description="Lunch",
            amount="120",
            paid_by_id=trip["alice"],
            participants=[trip["alice"], trip["bob"]],
        )

        assert debt_set(service, trip["group"]) == {
            (trip["bob"], trip["alice"], Decimal("60.00"))
        }

    def test_add_transaction_defaults(self, service, trip):
        """Date and created_at are filled in, duplicates collapsed."""
        transaction_id = service.add_transaction(
            trip["group"],
            description="Taxi",
            amount=Decimal("30"),
            paid_by_id=trip["bob"],
            participants=[trip["alice"], trip["alice"], trip["bob"]],
        )

        transaction = service.get_transaction_by_id(trip["group"], transaction_id)
        assert transaction.participants == (trip["alice"], trip["bob"])
        assert transaction.date
        assert transaction.created_at is not None

    def test_transactions_persist(self, service, trip, mock_db, mock_settings):
        """A new service over the same store sees the transaction."""
        service.add_transaction(
            trip["group"],
            description="Fuel",
            amount="80",
            paid_by_id=trip["carol"],
            participants=[trip["alice"], trip["bob"], trip["carol"]],
            location="Highway 1",
        )

        reloaded = GroupService(mock_db, mock_settings)
        (transaction,) = reloaded.require_group(trip["group"]).transactions
        assert transaction.description == "Fuel"
        assert transaction.location == "Highway 1"

    @pytest.mark.parametrize("amount", ["-5", "abc", "NaN"])
    def test_rejects_bad_amount(self, service, trip, amount):
        """Amounts must be non-negative numbers."""
        with pytest.raises(InvalidTransactionError):
            service.add_transaction(
                trip["group"],
                description="Bad",
                amount=amount,
                paid_by_id=trip["alice"],
                participants=[trip["alice"]],
            )

    def test_rejects_empty_participants(self, service, trip):
        """Someone has to share the expense."""
        with pytest.raises(InvalidTransactionError, match="participant"):
            service.add_transaction(
                trip["group"],
                description="Nobody",
                amount="10",
                paid_by_id=trip["alice"],
                participants=[],
            )

    def test_rejects_blank_description(self, service, trip):
        """Descriptions are required."""
        with pytest.raises(InvalidTransactionError):
            service.add_transaction(
                trip["group"],
                description=" ",
                amount="10",
                paid_by_id=trip["alice"],
                participants=[trip["alice"]],
            )

    def test_rejects_unknown_people(self, service, trip):
        """Payer and participants must be in the roster."""
        with pytest.raises(PersonNotFoundError):
            service.add_transaction(
                trip["group"],
                description="Ghost",
                amount="10",
                paid_by_id="ghost",
                participants=[trip["alice"]],
            )
        with pytest.raises(PersonNotFoundError):
            service.add_transaction(
                trip["group"],
                description="Ghost",
                amount="10",
                paid_by_id=trip["alice"],
                participants=["ghost"],
            )

    def test_edit_transaction(self, service, trip):
        """Editing keeps the id and recomputes debts."""
        transaction_id = service.add_transaction(
            trip["group"],
            description="Dinner",
            amount="100",
            paid_by_id=trip["alice"],
            participants=[trip["alice"], trip["bob"]],
        )

        updated = service.edit_transaction(
            trip["group"], transaction_id, amount="60", paid_by_id=trip["bob"]
        )

        assert updated.id == transaction_id
        assert updated.description == "Dinner"
        assert debt_set(service, trip["group"]) == {
            (trip["alice"], trip["bob"], Decimal("30.00"))
        }

    def test_edit_unknown_transaction(self, service, trip):
        """Editing a missing transaction raises."""
        with pytest.raises(TransactionNotFoundError):
            service.edit_transaction(trip["group"], "missing", amount="1")

    def test_edit_rejects_unknown_field(self, service, trip):
        """Only transaction fields can be edited."""
        transaction_id = service.add_transaction(
            trip["group"],
            description="Dinner",
            amount="100",
            paid_by_id=trip["alice"],
            participants=[trip["alice"]],
        )

        with pytest.raises(InvalidTransactionError, match="id"):
            service.edit_transaction(trip["group"], transaction_id, id="other")

    def test_delete_transaction(self, service, trip):
        """Deleting a transaction clears its debts."""
        transaction_id = service.add_transaction(
            trip["group"],
            description="Dinner",
            amount="100",
            paid_by_id=trip["alice"],
            participants=[trip["alice"], trip["bob"]],
        )

        service.delete_transaction(trip["group"], transaction_id)

        assert service.get_transaction_by_id(trip["group"], transaction_id) is None
        assert service.calculate_debts(trip["group"]) == []

    def test_delete_unknown_transaction(self, service, trip):
        """Deleting a missing transaction raises."""
        with pytest.raises(TransactionNotFoundError):
            service.delete_transaction(trip["group"], "missing")

    def test_get_transaction_in_unknown_group(self, service):
        """Lookups in a missing group return None."""
        assert service.get_transaction_by_id("missing", "t1") is None


class TestCalculateDebts:
    """Tests for computing settlements through the service."""

    def test_unknown_group_has_no_debts(self, service):
        """A missing group yields an empty list."""
        assert service.calculate_debts("missing") == []

    def test_netting_across_transactions(self, service, trip):
        """Alice paid 100 for two, Bob paid 30 for two: Bob owes Alice 35.00."""
        pair = [trip["alice"], trip["bob"]]
        service.add_transaction(
            trip["group"],
            description="Hotel",
            amount="100",
            paid_by_id=trip["alice"],
            participants=pair,
        )
        service.add_transaction(
            trip["group"],
            description="Coffee",
            amount="30",
            paid_by_id=trip["bob"],
            participants=pair,
        )

        assert debt_set(service, trip["group"]) == {
            (trip["bob"], trip["alice"], Decimal("35.00"))
        }


class TestStoreFailures:
    """The in-memory collection only changes once the store accepts it."""

    def test_failed_save_keeps_groups(self, tmp_path):
        """A store error leaves the previous groups in place."""
        existing = create_demo_group()
        repository = MagicMock()
        repository.load.return_value = [existing]
        repository.save.side_effect = OSError("disk full")
        service = GroupService(repository, MagicMock(seed_demo_group=False))

        with pytest.raises(OSError):
            service.add_group("Beach")
        with pytest.raises(OSError):
            service.delete_group(existing.id)
        with pytest.raises(OSError):
            service.add_person(existing.id, "Zoe")

        assert service.list_groups() == [existing]


class TestLargeAmounts:
    """Amounts beyond the default decimal precision."""

    def test_huge_amount_settles(self, service, trip):
        """A 1e27 expense is stored and settled without raising."""
        service.add_transaction(
            trip["group"],
            description="Island",
            amount="1e27",
            paid_by_id=trip["alice"],
            participants=[trip["alice"], trip["bob"]],
        )

        assert debt_set(service, trip["group"]) == {
            (trip["bob"], trip["alice"], Decimal("5e26"))
        }


class TestEditLocation:
    """Editing can set and clear the location."""

    def test_clear_location(self, service, trip):
        """Passing location=None removes it; omitting it keeps it."""
        transaction_id = service.add_transaction(
            trip["group"],
            description="Museum",
            amount="40",
            paid_by_id=trip["alice"],
            participants=[trip["alice"], trip["bob"]],
            location="Louvre",
        )

        kept = service.edit_transaction(trip["group"], transaction_id, amount="50")
        assert kept.location == "Louvre"

        cleared = service.edit_transaction(trip["group"], transaction_id, location=None)
        assert cleared.location is None
        assert cleared.amount == Decimal("50")
