"""
contacts.py — BPOU and CD contact tables.

Both tables are keyed by the identifiers the FeatureStore produces
(BPOU_NAME and the derived CD id). Lookups are total: a miss returns an
empty ContactRecord.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from bpou_finder.models import ContactRecord

logger = logging.getLogger(__name__)


def _parse_table(raw: Any, label: str) -> dict[str, ContactRecord]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s contacts: expected an object, got %s.",
                       label, type(raw).__name__)
        return {}
    return {str(key).strip(): ContactRecord.from_raw(value) for key, value in raw.items()}


class ContactDirectory:
    """Two independent name → ContactRecord mappings."""

    def __init__(
        self,
        bpou: Optional[dict[str, ContactRecord]] = None,
        cd: Optional[dict[str, ContactRecord]] = None,
    ) -> None:
        self.bpou: dict[str, ContactRecord] = bpou or {}
        self.cd: dict[str, ContactRecord] = cd or {}

    def load(self, bpou_raw: Any, cd_raw: Any) -> None:
        """
        Replace both tables from decoded contacts JSON.

        Either argument may be None (its fetch failed) or of the wrong shape;
        that table simply ends up empty.
        """
        self.bpou = _parse_table(bpou_raw, "BPOU")
        self.cd = _parse_table(cd_raw, "CD")
        logger.info("Loaded %d BPOU and %d CD contact records", len(self.bpou), len(self.cd))

    def lookup_bpou(self, name: Optional[str]) -> ContactRecord:
        if not name:
            return ContactRecord()
        return self.bpou.get(name.strip()) or ContactRecord()

    def lookup_cd(self, cd_id: Optional[str]) -> ContactRecord:
        if not cd_id:
            return ContactRecord()
        return self.cd.get(cd_id.strip()) or ContactRecord()
