"""Tri-state field updates: leave unchanged, clear, or set.

Nullable fields whose update must distinguish "not mentioned" from
"remove the stored value" take a Change instead of an Optional:

    Unchanged()   keep the stored value
    Clear()       store None
    SetTo(value)  store value

change_from_model() builds one from a pydantic request body, where an
omitted field is Unchanged and an explicit null is Clear.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


@dataclass(frozen=True)
class Unchanged:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SetTo(Generic[T]):
    value: T


Change = Unchanged | Clear | SetTo

UNCHANGED = Unchanged()
CLEAR = Clear()


def apply_change(current: Any, change: Change) -> Any:
    """Return the value that results from applying change to current."""
    if isinstance(change, Unchanged):
        return current
    if isinstance(change, Clear):
        return None
    if isinstance(change, SetTo):
        return change.value
    raise TypeError(f"Not a Change: {change!r}")


def change_from_model(model: BaseModel, field_name: str) -> Change:
    if field_name not in model.model_fields_set:
        return UNCHANGED
    value = getattr(model, field_name)
    if value is None:
        return CLEAR
    return SetTo(value)
