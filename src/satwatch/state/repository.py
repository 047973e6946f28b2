"""Asset repository abstraction.

The store only talks to a :class:`AssetRepository`, so the backing storage
(in-memory map, durable key/value store, relational database) can change
without touching ingestion logic.
"""

from __future__ import annotations

import threading
from typing import Protocol

from satwatch.state.asset import DeviceAsset


class AssetRepository(Protocol):
    """Structural repository interface used by :class:`~satwatch.state.store.DeviceStateStore`.

    ``save`` must replace the stored asset as a whole: either the new
    version is stored or, on failure, the previous one stays.
    """

    def get(self, device_id: str) -> DeviceAsset | None: ...

    def save(self, asset: DeviceAsset) -> None: ...

    def all(self) -> list[DeviceAsset]: ...


class InMemoryAssetRepository:
    """Process-local repository backed by a dict."""

    def __init__(self) -> None:
        self._assets: dict[str, DeviceAsset] = {}
        self._guard = threading.Lock()

    def get(self, device_id: str) -> DeviceAsset | None:
        return self._assets.get(device_id)

    def save(self, asset: DeviceAsset) -> None:
        with self._guard:
            self._assets[asset.id] = asset

    def all(self) -> list[DeviceAsset]:
        with self._guard:
            return list(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)
