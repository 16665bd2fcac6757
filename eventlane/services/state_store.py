"""Process-wide key-value state used by the scanner."""

from datetime import datetime
from typing import Any, Protocol

from sqlmodel import Session

from eventlane.models.state import StateValue


class KeyValueStore(Protocol):
    """Named values that survive between scanner runs."""

    def get(self, name: str, default: Any = None) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...


class DatabaseStateStore:
    """KeyValueStore backed by the key_value_state table.

    set() flushes but does not commit; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str, default: Any = None) -> Any:
        row = self.session.get(StateValue, name)
        if row is None or row.value is None:
            return default
        return row.value

    def set(self, name: str, value: Any) -> None:
        row = self.session.get(StateValue, name)
        if row is None:
            row = StateValue(name=name)
        row.value = value
        row.updated_at = datetime.utcnow()
        self.session.add(row)
        self.session.flush()


class MemoryStateStore:
    """In-process KeyValueStore, for tests and one-off scans."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value
