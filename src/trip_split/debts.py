"""Core debt computation: who owes whom after netting a group's expenses."""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .models import Debt, Group, Person

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

# (debtor_id, creditor_id) -> amount owed
Obligations = dict[tuple[str, str], Decimal]


def to_cents(amount: Decimal) -> Decimal:
    """
    Round a Decimal amount to exactly 2 fraction digits.
    Uses ROUND_HALF_UP (half away from zero) for consistency. Precision is
    widened so amounts of any magnitude keep their integer digits.

    Args:
        amount: Amount as Decimal, at full precision

    Returns:
        Amount quantized to cents
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_gross_obligations(group: Group) -> Obligations:
    """
    Accumulate the gross amount each person owes every other person.

    Every ordered pair of distinct roster members starts at zero. Each
    transaction adds ``amount / len(participants)`` to (participant, payer)
    for every participant other than the payer. No rounding happens here.

    References to people outside the roster are skipped, and a transaction
    without participants contributes nothing.

    Args:
        group: Group snapshot (not mutated)

    Returns:
        Mapping of (debtor_id, creditor_id) to gross amount owed
    """
    gross: Obligations = {
        (debtor.id, creditor.id): ZERO
        for debtor in group.people
        for creditor in group.people
        if debtor.id != creditor.id
    }

    for transaction in group.transactions:
        if not transaction.participants:
            logger.debug(f"Transaction {transaction.id} has no participants, skipping")
            continue

        share = transaction.amount / len(transaction.participants)
        payer_id = transaction.paid_by_id

        for participant_id in transaction.participants:
            if participant_id == payer_id:
                continue

            key = (participant_id, payer_id)
            if key not in gross:
                logger.debug(
                    f"Transaction {transaction.id} references a person outside "
                    f"the roster ({participant_id} -> {payer_id}), skipping"
                )
                continue

            gross[key] += share

    return gross


def net_obligations(people: Sequence[Person], gross: Obligations) -> Obligations:
    """
    Offset opposite obligations between each pair of people.

    If A owes B $5 and B owes A $3, A ends up owing B $2 and B owes nothing.
    This is a single pass over pairs; it does not cancel cycles across three
    or more people.

    Args:
        people: Group roster
        gross: Gross obligations from compute_gross_obligations

    Returns:
        New mapping with each pair netted down to at most one direction
    """
    netted = dict(gross)

    for i, person_a in enumerate(people):
        for person_b in people[i + 1 :]:
            a_to_b = (person_a.id, person_b.id)
            b_to_a = (person_b.id, person_a.id)
            if a_to_b not in netted or b_to_a not in netted:
                continue

            a_owes_b = netted[a_to_b]
            b_owes_a = netted[b_to_a]

            if a_owes_b > 0 and b_owes_a > 0:
                if a_owes_b > b_owes_a:
                    netted[a_to_b] = a_owes_b - b_owes_a
                    netted[b_to_a] = ZERO
                else:
                    netted[b_to_a] = b_owes_a - a_owes_b
                    netted[a_to_b] = ZERO

    return netted


def calculate_debts(group: Group) -> list[Debt]:
    """
    Compute the settlements for a group.

    Steps:
    1. Accumulate gross pairwise obligations at full precision
    2. Net each pair of people against each other
    3. Round every remaining positive obligation to cents

    Amounts that round to zero are not emitted. Output order follows the
    roster but callers must not rely on it.

    Args:
        group: Group snapshot (roster and transactions)

    Returns:
        List of debts, each with a strictly positive amount
    """
    if not group.people or not group.transactions:
        return []

    netted = net_obligations(group.people, compute_gross_obligations(group))

    debts = []
    for (from_person_id, to_person_id), amount in netted.items():
        if amount <= 0:
            continue

        rounded = to_cents(amount)
        if rounded <= 0:
            logger.debug(
                f"Dropping sub-cent obligation {amount} "
                f"from {from_person_id} to {to_person_id}"
            )
            continue

        debts.append(
            Debt(from_person_id=from_person_id, to_person_id=to_person_id, amount=rounded)
        )

    return debts


def compute_balances(people: Iterable[Person], debts: Iterable[Debt]) -> dict[str, Decimal]:
    """
    Compute each person's net position from a list of settled debts.

    Positive means the person is owed money, negative means they owe.

    Args:
        people: Group roster
        debts: Output of calculate_debts

    Returns:
        Mapping of person_id to net balance, for everyone in the roster
    """
    balances = {person.id: Decimal("0.00") for person in people}
    for debt in debts:
        if debt.from_person_id in balances:
            balances[debt.from_person_id] -= debt.amount
        if debt.to_person_id in balances:
            balances[debt.to_person_id] += debt.amount
    return balances
