"""Availability pools of accessories that can be linked to a parent asset.

A pool is a snapshot, per accessory category, of inventory records that are
``available`` and not assigned to anybody. It is refreshed in full whenever a
device form opens and after an accessory is created from a form; it is never
patched incrementally. A failed refresh keeps the previous snapshot.

A unit a form has just created and linked is claimed: it stays out of the
candidates, whatever later refreshes return, until the form releases it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from ..core.accessories import ACCESSORY_CATEGORIES, get_category
from ..core.asset_types import STATUS_AVAILABLE
from ..core.config import get_settings
from ..core.errors import InventoryApiError
from ..schemas.asset import Asset, AssetId, AssetPage

logger = logging.getLogger(__name__)


class AssetLister(Protocol):
    def list_assets(self, filters: Any = None, page: int = 1, page_size: int = 100) -> AssetPage: ...


def is_linkable(asset: Asset, asset_type: str) -> bool:
    return (
        asset.asset_type == asset_type
        and asset.status == STATUS_AVAILABLE
        and not asset.assigned_person_id
    )


def option_label(asset: Asset) -> str:
    code = asset.asset_code or str(asset.id)
    return f"{code} - {asset.brand or ''} {asset.model or ''}".strip()


class AccessoryPool:
    """Per-category candidate lists, shared by a form and its nested form."""

    def __init__(self, client: AssetLister, page_size: int | None = None) -> None:
        self._client = client
        self._page_size = page_size or get_settings().POOL_PAGE_SIZE
        self._lock = threading.Lock()
        self._pools: Dict[str, List[Asset]] = {name: [] for name in ACCESSORY_CATEGORIES}
        self._claimed: Set[str] = set()
        self.last_error: Optional[str] = None
        self.refreshed = False

    def refresh(self) -> bool:
        """Re-fetch every pool in one call; ``False`` when the old snapshot was kept."""

        try:
            page = self._client.list_assets(page=1, page_size=self._page_size)
        except InventoryApiError as exc:
            self.last_error = exc.message
            logger.warning(
                "Accessory pool refresh failed; keeping previous snapshot",
                extra={"extra_data": {"error": exc.message}},
            )
            return False

        fresh = {
            name: [asset for asset in page.items if is_linkable(asset, name)]
            for name in ACCESSORY_CATEGORIES
        }
        with self._lock:
            self._pools = fresh
            self.last_error = None
            self.refreshed = True
        logger.debug(
            "Accessory pools refreshed",
            extra={"extra_data": {name: len(items) for name, items in fresh.items()}},
        )
        return True

    def candidates(self, category: str) -> List[Asset]:
        name = get_category(category).asset_type
        with self._lock:
            return [asset for asset in self._pools.get(name, []) if str(asset.id) not in self._claimed]

    def claim(self, asset_id: AssetId) -> None:
        """Keep ``asset_id`` out of the candidates, across refreshes too."""

        with self._lock:
            self._claimed.add(str(asset_id))

    def release(self, asset_id: AssetId) -> None:
        with self._lock:
            self._claimed.discard(str(asset_id))

    def contains(self, category: str, asset_id: AssetId) -> bool:
        wanted = str(asset_id)
        return any(str(asset.id) == wanted for asset in self.candidates(category))

    def options(
        self,
        category: str,
        query: str | None = None,
        exclude: Iterable[AssetId] = (),
    ) -> List[Dict[str, str]]:
        """Searchable ``{"label", "value"}`` entries for the selection list."""

        needle = (query or "").strip().lower()
        skipped = {str(asset_id) for asset_id in exclude}
        entries = []
        for asset in self.candidates(category):
            if str(asset.id) in skipped:
                continue
            label = option_label(asset)
            haystack = " ".join(
                part for part in (label, asset.serial_number or "") if part
            ).lower()
            if needle and needle not in haystack:
                continue
            entries.append({"label": label, "value": str(asset.id)})
        return entries

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {
                name: sum(1 for asset in items if str(asset.id) not in self._claimed)
                for name, items in self._pools.items()
            }
