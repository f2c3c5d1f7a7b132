"""Time bucketing strategies for the metrics queries.

Two interchangeable strategies produce the same bucket labels:

* ``NativeTruncation`` asks the store to truncate timestamps (``date_trunc``)
  and extract fields (``EXTRACT``), then renders labels in Python.
* ``FormattedTruncation`` formats timestamps inside the store (``strftime``
  on SQLite, ``to_char`` on PostgreSQL) and uses the strings as labels.

Day-of-week is always Sunday=0 .. Saturday=6. Timestamps are stored as naive
UTC, so every bucket is a UTC bucket.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, cast, extract, func, literal_column
from sqlalchemy.orm import Session

from analytics_api.core import config

TRUNCATION_UNITS = ('minute', 'hour', 'day')
NATIVE_TRUNCATION_DIALECTS = {'postgresql'}

_TO_CHAR_TOKENS = {
    '%Y': 'YYYY',
    '%m': 'MM',
    '%d': 'DD',
    '%H': 'HH24',
    '%M': 'MI',
    '%S': 'SS',
}


def _sql_string(value: str):
    # Inlined rather than bound so GROUP BY and SELECT render the same expression.
    return literal_column("'" + value.replace("'", "''") + "'")


def to_char_pattern(fmt: str) -> str:
    """Translate a strftime format into a PostgreSQL ``to_char`` pattern."""
    parts: list[str] = []
    literal = ''
    index = 0
    while index < len(fmt):
        token = fmt[index:index + 2]
        if token in _TO_CHAR_TOKENS:
            if literal:
                parts.append(f'"{literal}"')
                literal = ''
            parts.append(_TO_CHAR_TOKENS[token])
            index += 2
        elif token.startswith('%'):
            raise ValueError(f'Unsupported format directive {token!r}.')
        else:
            literal += fmt[index]
            index += 1
    if literal:
        parts.append(f'"{literal}"')
    return ''.join(parts)


class BucketStrategy:
    name = ''

    def __init__(self, dialect_name: str) -> None:
        self.dialect_name = dialect_name

    def truncate(self, column, unit: str, fmt: str):
        """Expression grouping ``column`` into ``unit`` buckets labelled with ``fmt``."""
        raise NotImplementedError

    def render(self, value, fmt: str) -> str:
        raise NotImplementedError

    def hour_of_day(self, column):
        raise NotImplementedError

    def day_of_week(self, column):
        raise NotImplementedError

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.dialect_name!r})'


class NativeTruncation(BucketStrategy):
    name = 'native'

    def truncate(self, column, unit: str, fmt: str):
        if unit not in TRUNCATION_UNITS:
            raise ValueError(f'Unsupported truncation unit {unit!r}.')
        return func.date_trunc(_sql_string(unit), column, type_=DateTime)

    def render(self, value, fmt: str) -> str:
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return value.strftime(fmt)

    def hour_of_day(self, column):
        return extract('hour', column)

    def day_of_week(self, column):
        # EXTRACT(dow) is Sunday=0 on PostgreSQL; SQLAlchemy maps it to %w on SQLite.
        return extract('dow', column)


class FormattedTruncation(BucketStrategy):
    """Buckets by formatting; ``fmt`` alone decides the bucket width."""

    name = 'formatted'

    @property
    def _postgres(self) -> bool:
        return self.dialect_name == 'postgresql'

    def _format(self, column, fmt: str):
        if self._postgres:
            return func.to_char(column, _sql_string(to_char_pattern(fmt)))
        return func.strftime(_sql_string(fmt), column)

    def truncate(self, column, unit: str, fmt: str):
        return self._format(column, fmt)

    def render(self, value, fmt: str) -> str:
        return str(value)

    def hour_of_day(self, column):
        if self._postgres:
            return cast(func.to_char(column, _sql_string('HH24')), Integer)
        return cast(self._format(column, '%H'), Integer)

    def day_of_week(self, column):
        if self._postgres:
            # to_char's D pattern counts Sunday as 1.
            return cast(func.to_char(column, _sql_string('D')), Integer) - 1
        return cast(func.strftime(_sql_string('%w'), column), Integer)


STRATEGIES = {
    NativeTruncation.name: NativeTruncation,
    FormattedTruncation.name: FormattedTruncation,
}


def select_strategy(dialect_name: str, preference: str | None = None) -> BucketStrategy:
    preference = (preference or config.METRICS_BUCKET_STRATEGY or 'auto').lower()
    if preference in STRATEGIES:
        return STRATEGIES[preference](dialect_name)
    if preference != 'auto':
        raise ValueError(f'Unknown bucket strategy {preference!r}.')
    if dialect_name in NATIVE_TRUNCATION_DIALECTS:
        return NativeTruncation(dialect_name)
    return FormattedTruncation(dialect_name)


def strategy_for_session(db: Session) -> BucketStrategy:
    return select_strategy(db.get_bind().dialect.name)
