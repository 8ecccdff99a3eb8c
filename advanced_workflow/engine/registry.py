"""Type Registry - Named lookup of behaviors, guards and hooks"""
from typing import Callable, Dict, Generic, List, TypeVar

from ..domain.errors import UnknownTypeError

T = TypeVar("T")


class Registry(Generic[T]):
    """Maps the type name declared in a definition to its implementation"""

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: Dict[str, T] = {}

    def register(self, name: str, entry: T) -> T:
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> T:
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownTypeError(
                f"No {self.kind} registered as '{name}'",
                details={"kind": self.kind, "name": name, "known": self.names()}
            )

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def names(self) -> List[str]:
        return sorted(self._entries)

    def copy(self) -> "Registry[T]":
        """Independent registry with the same entries, for local additions"""
        clone: Registry[T] = Registry(self.kind)
        clone._entries = dict(self._entries)
        return clone

    def decorator(self, name: str) -> Callable[[T], T]:
        """Class/function decorator that registers an instance of the class or the function"""
        def wrap(entry):
            self.register(name, entry() if isinstance(entry, type) else entry)
            return entry
        return wrap
