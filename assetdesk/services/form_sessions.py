from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Optional, Tuple

from ..core.errors import FormStateError
from .device_form import DeviceForm

logger = logging.getLogger(__name__)

# Abandoned dialogs are dropped after this many idle seconds.
DEFAULT_IDLE_TTL = 60 * 60


class FormSessionStore:
    """Open device forms keyed by form id, shared across request threads."""

    def __init__(self, idle_ttl: float = DEFAULT_IDLE_TTL) -> None:
        self._idle_ttl = idle_ttl
        self._lock = threading.Lock()
        self._forms: Dict[str, Tuple[DeviceForm, float]] = {}

    def add(self, form: DeviceForm) -> DeviceForm:
        with self._lock:
            self._evict_idle()
            self._forms[form.id] = (form, time.monotonic())
        logger.info(
            "Device form opened",
            extra={"extra_data": {"form": form.id, "mode": form.mode, "asset_type": form.values.asset_type}},
        )
        return form

    def get(self, form_id: str) -> DeviceForm:
        with self._lock:
            entry = self._forms.get(form_id)
            if entry is None:
                raise KeyError(form_id)
            form = entry[0]
            self._forms[form_id] = (form, time.monotonic())
        return form

    def discard(self, form_id: str) -> Optional[DeviceForm]:
        with self._lock:
            entry = self._forms.pop(form_id, None)
        if entry is None:
            return None
        form = entry[0]
        form.close()
        return form

    def require_open(self, form_id: str) -> DeviceForm:
        form = self.get(form_id)
        if not form.is_open:
            raise FormStateError("El formulario ya fue guardado o cerrado")
        return form

    def __len__(self) -> int:
        with self._lock:
            return len(self._forms)

    def _evict_idle(self) -> None:
        cutoff = time.monotonic() - self._idle_ttl
        stale = [form_id for form_id, (_, touched) in self._forms.items() if touched < cutoff]
        for form_id in stale:
            form, _ = self._forms.pop(form_id)
            form.close()
        if stale:
            logger.info("Evicted idle device forms", extra={"extra_data": {"count": len(stale)}})
