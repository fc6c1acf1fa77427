"""Sample group shown on first run."""

from datetime import datetime, timedelta
from decimal import Decimal

from .models import Group, Person, Transaction


def _minute_stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M")


def create_demo_group(now: datetime | None = None) -> Group:
    """Build the "Demo Trip" group with three people and two expenses."""
    now = now or datetime.now()
    earlier = now - timedelta(hours=3)

    michael = Person(name="Michael")
    andrew = Person(name="Andrew")
    james = Person(name="James")

    return Group(
        name="Demo Trip",
        people=(michael, andrew, james),
        transactions=(
            Transaction(
                description="Lunch",
                amount=Decimal("120"),
                date=_minute_stamp(earlier),
                paid_by_id=michael.id,
                participants=(michael.id, andrew.id),
                location="The Grounds of Alexandria, Sydney",
            ),
            Transaction(
                description="Activity",
                amount=Decimal("180"),
                date=_minute_stamp(now),
                paid_by_id=james.id,
                participants=(michael.id, andrew.id, james.id),
                location="Sydney Opera House, Bennelong Point",
            ),
        ),
        created_at=now,
    )
