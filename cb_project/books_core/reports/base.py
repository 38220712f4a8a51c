import dataclasses
from datetime import date, timedelta

from ..money import CENT


def _camel(name):
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def serialize(value):
    """Dataclass tree -> plain dict/list with camelCase keys.

    Decimals and dates are left as-is; DjangoJSONEncoder renders them.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {_camel(f.name): serialize(getattr(value, f.name)) for f in dataclasses.fields(value)}
        for name in getattr(value, "extra_fields", ()):
            data[_camel(name)] = serialize(getattr(value, name))
        return data
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    return value


class Report:
    """Mixin for report dataclasses. ``extra_fields`` lists computed
    properties that belong in the payload."""

    extra_fields = ()

    def to_dict(self):
        return serialize(self)


def amounts_match(left, right):
    return abs(left - right) < CENT


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_end(day: date) -> date:
    return add_months(day, 1) - timedelta(days=1)


def shift_year(day: date, years: int = -1) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 Feb in a non-leap target year
        return day.replace(year=day.year + years, day=28)
