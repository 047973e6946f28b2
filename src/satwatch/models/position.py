"""Position sample model."""

from __future__ import annotations

import math

from pydantic import Field, model_validator

from satwatch.models._base import SatwatchModel, UtcDatetime


def is_valid_fix(lat: float | None, lon: float | None) -> bool:
    """Return ``True`` when *lat*/*lon* describe a usable GPS fix.

    Both values must be finite and within range, and ``(0, 0)`` (null
    island) is rejected because some upstream systems use it for "no fix".
    """
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return False
    return not (lat == 0.0 and lon == 0.0)


class PositionSample(SatwatchModel):
    """A single reported position of an asset."""

    lat: float
    lon: float
    altitude: float | None = None
    speed: float | None = None
    course: float | None = None
    gps_fix: int | str | None = Field(default=None)
    timestamp: UtcDatetime

    @model_validator(mode="after")
    def _reject_invalid_fix(self) -> PositionSample:
        if not is_valid_fix(self.lat, self.lon):
            raise ValueError(f"invalid position fix: lat={self.lat} lon={self.lon}")
        return self
