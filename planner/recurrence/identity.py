"""Stable external ids for virtual occurrences.

A virtual occurrence has no row of its own, so its id is derived from the
series that owns it: ``{parent_id}::instance::{sequence_index}``. Event ids
are UUIDs and never contain ``::``, which keeps the format unambiguous.
"""

from dataclasses import dataclass

INSTANCE_MARKER = "::instance::"


@dataclass(frozen=True)
class InstanceRef:
    """A decoded id: the concrete row it points at, plus the occurrence index
    when the id named a virtual occurrence."""
    parent_id: str
    index: int | None = None

    @property
    def is_instance(self) -> bool:
        return self.index is not None


def encode_instance_id(parent_id, index: int) -> str:
    return f"{parent_id}{INSTANCE_MARKER}{index}"


def decode_instance_id(value: str) -> InstanceRef:
    """Split an id into parent id and occurrence index.

    Never raises. Anything that is not a well-formed instance id is returned
    whole as a concrete id, so a lookup with it simply finds nothing.
    """
    parent_id, marker, suffix = value.rpartition(INSTANCE_MARKER)
    if not marker or not parent_id or not suffix.isdigit() or not suffix.isascii():
        return InstanceRef(value)
    return InstanceRef(parent_id, int(suffix))
