# src/core/models/result.py

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying its value."""
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """
    Failed outcome carrying one or more structured errors.
    Callers branch on the result type instead of catching exceptions.
    """
    errors: List[E] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def error(self) -> E:
        """The first (primary) error."""
        return self.errors[0]


Result = Union[Ok[T], Err[E]]
