"""Service layer for managing groups and computing their settlements.

Groups are immutable values. Every mutation builds a new Group, persists the
whole collection through the injected repository and only then swaps it into
the in-memory collection.
"""

import logging
from collections.abc import Iterable
from datetime import date as date_cls
from datetime import datetime
from decimal import Decimal, InvalidOperation

from .config import Settings
from .db import GroupRepository
from .debts import calculate_debts
from .demo import create_demo_group
from .exceptions import (
    GroupNotFoundError,
    InvalidGroupError,
    InvalidTransactionError,
    PersonNotFoundError,
    TransactionNotFoundError,
)
from .models import Debt, Group, Person, Transaction

logger = logging.getLogger(__name__)


class GroupService:
    """Service for managing groups, people and transactions."""

    def __init__(self, repository: GroupRepository, settings: Settings):
        """Initialize the service and load the stored groups."""
        self.repository = repository
        self.settings = settings
        self.groups: list[Group] = repository.load()

        if not self.groups and settings.seed_demo_group:
            demo = create_demo_group()
            self._persist([demo])
            logger.info(f"Seeded demo group {demo.id}")

    def _persist(self, groups: list[Group]):
        # Only swap the in-memory collection once the store accepted it
        self.repository.save(groups)
        self.groups = groups

    def _replace(self, group: Group):
        self._persist([group if g.id == group.id else g for g in self.groups])

    # ========================================================================
    # Groups
    # ========================================================================

    def list_groups(self) -> list[Group]:
        """Get all groups in insertion order."""
        return list(self.groups)

    def get_group_by_id(self, group_id: str) -> Group | None:
        """Get a group by id, or None if it does not exist."""
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def require_group(self, group_id: str) -> Group:
        """Get a group by id, raising if it does not exist."""
        group = self.get_group_by_id(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def add_group(self, name: str, created_by: str | None = None) -> str:
        """Create an empty group and return its id."""
        if not name or not name.strip():
            raise InvalidGroupError("Group name cannot be empty")

        group = Group(name=name, created_by=created_by, created_at=datetime.now())
        self._persist([*self.groups, group])

        logger.info(f"Created group '{group.name}' ({group.id})")
        return group.id

    def delete_group(self, group_id: str):
        """Delete a group and everything in it."""
        self.require_group(group_id)
        self._persist([g for g in self.groups if g.id != group_id])
        logger.info(f"Deleted group {group_id}")

    # ========================================================================
    # People
    # ========================================================================

    def add_person(self, group_id: str, name: str) -> str:
        """Add a person to a group's roster and return their id."""
        group = self.require_group(group_id)
        if not name or not name.strip():
            raise InvalidGroupError("Person name cannot be empty")

        person = Person(name=name)
        self._replace(group.model_copy(update={"people": (*group.people, person)}))

        logger.info(f"Added {person.name} ({person.id}) to group {group_id}")
        return person.id

    def resolve_person(self, group: Group, reference: str) -> Person:
        """
        Find a person by id, or by case-insensitive name.

        Raises:
            PersonNotFoundError: If nobody matches
            InvalidGroupError: If the name matches more than one person
        """
        person = group.get_person(reference)
        if person is not None:
            return person

        wanted = reference.strip().lower()
        matches = [p for p in group.people if p.name.lower() == wanted]
        if not matches:
            raise PersonNotFoundError(group.id, reference)
        if len(matches) > 1:
            raise InvalidGroupError(
                f"'{reference}' matches {len(matches)} people in group "
                f"{group.id}; use the person id instead"
            )
        return matches[0]

    # ========================================================================
    # Transactions
    # ========================================================================

    def add_transaction(
        self,
        group_id: str,
        *,
        description: str,
        amount: Decimal | str | float,
        paid_by_id: str,
        participants: Iterable[str],
        date: str | None = None,
        location: str | None = None,
        created_by: str | None = None,
    ) -> str:
        """Validate and record a new expense, returning its id."""
        group = self.require_group(group_id)
        transaction = _build_transaction(
            group,
            description=description,
            amount=amount,
            paid_by_id=paid_by_id,
            participants=participants,
            date=date or date_cls.today().isoformat(),
            location=location,
            created_by=created_by,
            created_at=datetime.now(),
        )

        self._replace(
            group.model_copy(
                update={"transactions": (*group.transactions, transaction)}
            )
        )

        logger.info(
            f"Added transaction '{transaction.description}' "
            f"({transaction.amount}) to group {group_id}"
        )
        return transaction.id

    def get_transaction_by_id(
        self, group_id: str, transaction_id: str
    ) -> Transaction | None:
        """Get a transaction, or None if the group or transaction is missing."""
        group = self.get_group_by_id(group_id)
        if group is None:
            return None
        return group.get_transaction(transaction_id)

    def edit_transaction(self, group_id: str, transaction_id: str, **changes) -> Transaction:
        """
        Update fields of an existing transaction.

        The id is preserved. Fields that are not passed keep their current
        values; passing location=None clears the location.
        The updated transaction goes through the same validation as a new one.

        Returns:
            The updated transaction
        """
        group = self.require_group(group_id)
        existing = group.get_transaction(transaction_id)
        if existing is None:
            raise TransactionNotFoundError(group_id, transaction_id)

        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise InvalidTransactionError(
                f"Cannot edit transaction field(s): {', '.join(sorted(unknown))}"
            )

        fields = {
            "description": existing.description,
            "amount": existing.amount,
            "paid_by_id": existing.paid_by_id,
            "participants": existing.participants,
            "date": existing.date,
            "location": existing.location,
            "created_by": existing.created_by,
            "created_at": existing.created_at,
        }
        fields.update(changes)

        updated = _build_transaction(group, transaction_id=transaction_id, **fields)
        self._replace(
            group.model_copy(
                update={
                    "transactions": tuple(
                        updated if t.id == transaction_id else t
                        for t in group.transactions
                    )
                }
            )
        )

        logger.info(f"Edited transaction {transaction_id} in group {group_id}")
        return updated

    def delete_transaction(self, group_id: str, transaction_id: str):
        """Remove a transaction from a group."""
        group = self.require_group(group_id)
        if group.get_transaction(transaction_id) is None:
            raise TransactionNotFoundError(group_id, transaction_id)

        self._replace(
            group.model_copy(
                update={
                    "transactions": tuple(
                        t for t in group.transactions if t.id != transaction_id
                    )
                }
            )
        )
        logger.info(f"Deleted transaction {transaction_id} from group {group_id}")

    # ========================================================================
    # Settlements
    # ========================================================================

    def calculate_debts(self, group_id: str) -> list[Debt]:
        """Compute the current settlements for a group (empty if unknown)."""
        group = self.get_group_by_id(group_id)
        if group is None:
            return []

        debts = calculate_debts(group)
        logger.debug(f"Computed {len(debts)} debts for group {group_id}")
        return debts


_EDITABLE_FIELDS = {
    "description",
    "amount",
    "paid_by_id",
    "participants",
    "date",
    "location",
}


def find_person_name(group: Group, person_id: str) -> str:
    """Get a display name for a person id, or "Unknown" if it is dangling."""
    person = group.get_person(person_id)
    return person.name if person else "Unknown"


def _build_transaction(
    group: Group,
    *,
    description: str,
    amount: Decimal | str | float,
    paid_by_id: str,
    participants: Iterable[str],
    date: str,
    location: str | None,
    created_by: str | None,
    created_at: datetime | None,
    transaction_id: str | None = None,
) -> Transaction:
    """Validate transaction input against the group roster."""
    if not description or not description.strip():
        raise InvalidTransactionError("Description cannot be empty")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation as e:
        raise InvalidTransactionError(f"Amount '{amount}' is not a number") from e
    if not value.is_finite() or value < 0:
        raise InvalidTransactionError(f"Amount must be a non-negative number, got {amount}")

    # Collapse duplicates, keeping first-seen order
    unique_participants = tuple(dict.fromkeys(participants))
    if not unique_participants:
        raise InvalidTransactionError("A transaction needs at least one participant")

    if group.get_person(paid_by_id) is None:
        raise PersonNotFoundError(group.id, paid_by_id)
    for participant_id in unique_participants:
        if group.get_person(participant_id) is None:
            raise PersonNotFoundError(group.id, participant_id)

    fields = {
        "description": description,
        "amount": value,
        "paid_by_id": paid_by_id,
        "participants": unique_participants,
        "date": date,
        "location": location or None,
        "created_by": created_by,
        "created_at": created_at,
    }
    if transaction_id is not None:
        fields["id"] = transaction_id
    return Transaction(**fields)
