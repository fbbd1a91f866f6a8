"""Identifiers for stored records."""

from __future__ import annotations

import uuid
from typing import Annotated

from pydantic import Field

__all__ = ["RecordId", "generate_uuid7"]

RecordId = Annotated[
    uuid.UUID,
    Field(description="Time-ordered UUID assigned when the record is created."),
]

# uuid.uuid7 ships with Python 3.14; older interpreters get random ids.
_factory = getattr(uuid, "uuid7", uuid.uuid4)


def generate_uuid7() -> uuid.UUID:
    return _factory()
