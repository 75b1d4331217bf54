"""Default request context construction."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from .types import BanditContext


def season_for(date: datetime) -> str:
    month = date.month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


def get_current_context(
    user_id: str, now: datetime | None = None, **overrides: Any
) -> BanditContext:
    """Build a context for ``user_id`` from the clock, then apply overrides.

    Activity fields default to neutral values (no recent views or searches,
    zero session time, desktop device) when the caller has nothing better.
    """

    moment = now or datetime.now()
    context = BanditContext(
        user_id=user_id,
        time_of_day=moment.strftime("%H:%M"),
        day_of_week=moment.strftime("%A").lower(),
        season=season_for(moment),
    )
    known = {key: value for key, value in overrides.items() if value is not None}
    unknown = set(known) - set(context.to_dict())
    if unknown:
        raise TypeError(f"Unknown context fields: {', '.join(sorted(unknown))}")
    return replace(context, **known)
