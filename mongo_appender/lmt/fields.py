from dataclasses import dataclass
from typing import Iterator, List, Optional

from mongo_appender.lmt.layouts import FieldLayout


@dataclass(frozen=True)
class MongoAppenderField:
    name: str
    layout: Optional[FieldLayout] = None


class FieldRegistry:
    """
    Ordered list of configured document fields.

    Names are not checked for uniqueness and layouts may be None. Fields are
    expected to be registered before the appender is activated.
    """

    def __init__(self):
        self._fields: List[MongoAppenderField] = []

    def register(self, field: MongoAppenderField) -> None:
        self._fields.append(field)

    def list(self) -> List[MongoAppenderField]:
        return self._fields.copy()

    def __iter__(self) -> Iterator[MongoAppenderField]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)
