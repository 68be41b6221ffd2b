from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

from ..core.asset_types import MOBILE_ASSET_TYPES, normalize_asset_type
from ..core.config import get_settings
from ..core.errors import DuplicatePhoneNumberError, InventoryApiError
from ..core.phone import extract_phone_number, normalize_phone_number
from ..schemas.asset import AssetId, AssetPage, PhoneCheckResult

logger = logging.getLogger(__name__)


class PhoneLookupClient(Protocol):
    def check_phone_unique(self, normalized_number: str) -> PhoneCheckResult: ...

    def list_assets(self, filters: Any = None, page: int = 1, page_size: int = 100) -> AssetPage: ...


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


class PhoneRegistry:
    """Rejects a save whose phone number already belongs to another device.

    The inventory's uniqueness endpoint is asked first. When that call fails
    the whole inventory page is scanned instead, comparing numbers with the
    same normalisation the endpoint receives.
    """

    def __init__(
        self,
        client: PhoneLookupClient,
        *,
        scan_page_size: int | None = None,
    ) -> None:
        cfg = get_settings()
        self._client = client
        self._scan_page_size = scan_page_size or cfg.PHONE_SCAN_PAGE_SIZE

    def ensure_unique(
        self,
        asset_type: str | None,
        attributes: Mapping[str, Any] | None,
        editing_id: Optional[AssetId] = None,
    ) -> None:
        if normalize_asset_type(asset_type) not in MOBILE_ASSET_TYPES:
            return
        number = extract_phone_number(attributes)
        if not number:
            return

        try:
            result = self._client.check_phone_unique(number)
        except InventoryApiError as exc:
            logger.warning(
                "Phone uniqueness check failed; scanning inventory instead",
                extra={"extra_data": {"error": exc.message}},
            )
            conflict = self.find_conflict(number, editing_id)
            if conflict is not None:
                raise DuplicatePhoneNumberError(number, conflict)
            return

        if result.exists and not _same_id(result.device_id, editing_id):
            raise DuplicatePhoneNumberError(number, result.device_id)

    def find_conflict(self, number: str, editing_id: Optional[AssetId] = None) -> Optional[AssetId]:
        """Id of another device holding ``number``, scanning one large page."""

        wanted = normalize_phone_number(number)
        if not wanted:
            return None
        page = self._client.list_assets(page=1, page_size=self._scan_page_size)
        for asset in page.items:
            if _same_id(asset.id, editing_id):
                continue
            candidate = extract_phone_number(asset.attributes_json)
            if candidate and candidate == wanted:
                return asset.id
        return None
