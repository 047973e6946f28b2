"""Base model shared by all satwatch domain models.

* ``alias_generator=to_camel`` so models dump to the camelCase keys the
  operator UI consumes (``isActiveSos``, ``lastPositionAt``…) while Python
  code uses snake_case.
* Frozen: entries in the logs are shared between asset snapshots and must
  never change after they are recorded.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def ensure_utc(value: Any) -> Any:
    """Attach UTC to naive datetimes; other values pass through to pydantic."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(ensure_utc)]
"""Timezone-aware datetime; naive values are interpreted as UTC."""


class SatwatchModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_api(self) -> dict[str, Any]:
        """Dump as a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
