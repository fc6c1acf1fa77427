"""Pydantic domain models for TripSplit."""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid4())


class _Record(BaseModel):
    """Immutable record serialized with the camelCase keys of the groups store."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ============================================================================
# Group Models
# ============================================================================


class Person(_Record):
    """A participant in a group."""

    id: str = Field(default_factory=new_id)
    name: str
    google_user_id: str | None = None  # carried through, never interpreted


class Transaction(_Record):
    """One recorded expense: payer, amount, beneficiaries.

    ``paid_by_id`` advanced ``amount`` on behalf of everyone in
    ``participants``. The payer may or may not be a participant.
    """

    id: str = Field(default_factory=new_id)
    description: str = ""
    amount: Decimal = Field(ge=0)
    date: str = ""
    paid_by_id: str
    participants: tuple[str, ...] = ()
    location: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @field_validator("amount")
    @classmethod
    def amount_is_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("amount must be a finite number")
        return v


class Group(_Record):
    """A set of people sharing expenses, e.g. a trip."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    people: tuple[Person, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    created_by: str | None = None
    created_at: datetime | None = None

    def get_person(self, person_id: str) -> Person | None:
        """Get a person in this group by id."""
        for person in self.people:
            if person.id == person_id:
                return person
        return None

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Get a transaction in this group by id."""
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None


# ============================================================================
# Settlement Models
# ============================================================================


class Debt(_Record):
    """A netted, rounded amount one person owes another.

    Derived from a group snapshot on every query; never stored.
    """

    from_person_id: str  # person who owes money
    to_person_id: str  # person who is owed money
    amount: Decimal = Field(gt=0)
