"""Bulk rewrite of stored phone fields into canonical form.

Real mutation is gated twice: the process must allow it
(``ALLOW_PHONE_APPLY``) and the caller must not have asked for a dry run.
Without the flag and without an explicit dry run the run is refused.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from remindertribu import metrics
from remindertribu.core.exceptions import AuthorizationError, ValidationError
from remindertribu.models.records import MemberRecord
from remindertribu.services.member_store import MemberPatch, MemberStore, NormalizationLogEntry
from remindertribu.services.phone import DEFAULT_COUNTRY_CODE, normalize_phone

logger = logging.getLogger(__name__)

NORMALIZATION_VERSION = "1"
PREVIEW_MAX_LIMIT = 1000


def clamp_limit(value: int | None, default: int, maximum: int) -> int:
    if value is None:
        return default
    return max(1, min(int(value), maximum))


@dataclass
class MemberPhoneScan:
    """Per-member outcome of normalizing the configured fields."""

    member: MemberRecord
    updates: list[dict[str, Any]] = field(default_factory=list)
    invalids: list[dict[str, Any]] = field(default_factory=list)
    oks: list[dict[str, Any]] = field(default_factory=list)

    @property
    def affected(self) -> bool:
        return bool(self.updates or self.invalids)


def scan_member(member: MemberRecord, fields: list[str], country_code: str = DEFAULT_COUNTRY_CODE) -> MemberPhoneScan:
    result = MemberPhoneScan(member)
    for name in fields:
        if name not in member.data:
            continue
        before = member.data[name]
        if before is None or before == "":
            continue
        after = normalize_phone(before, country_code)
        if after is None:
            result.invalids.append({"field": name, "before": before})
        elif after != before:
            result.updates.append({"field": name, "before": before, "after": after})
        else:
            result.oks.append({"field": name, "value": before})
    return result


class PhoneApplyRunner:
    def __init__(
        self,
        store: MemberStore,
        country_code: str = DEFAULT_COUNTRY_CODE,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.store = store
        self.country_code = country_code
        self.clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))

    def _scan(self, fields: list[str], limit: int) -> tuple[int, list[MemberPhoneScan]]:
        if not fields:
            raise ValidationError("At least one phone field is required.", field="fields")
        members = self.store.list_members(limit=limit)
        return len(members), [scan_member(member, fields, self.country_code) for member in members]

    def preview(self, fields: list[str], limit: int | None = None) -> dict[str, Any]:
        """Report what a run would change; never writes."""
        limit = clamp_limit(limit, 200, PREVIEW_MAX_LIMIT)
        scanned, scans = self._scan(fields, limit)
        results = [
            {
                "id": scan.member.id,
                "name": scan.member.display_name,
                "updates": scan.updates,
                "invalids": scan.invalids,
                "oks": scan.oks,
            }
            for scan in scans
            if scan.affected
        ]
        return {
            "ok": True,
            "scanned": scanned,
            "fields": fields,
            "toUpdateDocs": len(results),
            "fieldUpdates": sum(len(scan.updates) for scan in scans),
            "invalidFields": sum(len(scan.invalids) for scan in scans),
            "results": results,
        }

    def run(
        self,
        fields: list[str],
        limit: int | None,
        apply_allowed: bool,
        dry_run_requested: bool,
    ) -> dict[str, Any]:
        if not apply_allowed and not dry_run_requested:
            raise AuthorizationError(
                "Phone apply is disabled. Set ALLOW_PHONE_APPLY=true or pass dryRun=true to simulate.",
                flag="ALLOW_PHONE_APPLY",
            )
        dry_run = dry_run_requested or not apply_allowed
        limit = clamp_limit(limit, 100, self.store.max_batch_docs)

        scanned, scans = self._scan(fields, limit)
        stamp = self.clock().isoformat()
        patches: list[MemberPatch] = []
        logs: list[NormalizationLogEntry] = []
        details: list[dict[str, Any]] = []
        fields_updated = invalid_fields = 0

        for scan in scans:
            fields_updated += len(scan.updates)
            invalid_fields += len(scan.invalids)
            if not scan.affected:
                continue
            details.append({"id": scan.member.id, "updates": scan.updates, "invalids": scan.invalids})
            if dry_run:
                continue
            if scan.updates:
                patch = MemberPatch(scan.member.id)
                for update in scan.updates:
                    patch.fields[update["field"]] = update["after"]
                    raw_key = f"{update['field']}Raw"
                    if not scan.member.data.get(raw_key):
                        patch.fields[raw_key] = update["before"]
                patch.fields["lastPhoneNormalizationAt"] = stamp
                patch.fields["phoneNormalizationVersion"] = NORMALIZATION_VERSION
                patches.append(patch)
            logs.append(NormalizationLogEntry(scan.member.id, scan.updates, scan.invalids, dry_run=False))

        if not dry_run:
            self.store.commit_phone_batch(patches, logs)

        metrics.phone_fields_normalized(fields_updated, dry_run)
        metrics.phone_fields_invalid(invalid_fields)
        logger.info(
            "Phone apply dry_run=%s scanned=%d docs=%d updated=%d invalid=%d",
            dry_run,
            scanned,
            len(details),
            fields_updated,
            invalid_fields,
        )
        return {
            "ok": True,
            "dryRun": dry_run,
            "scanned": scanned,
            "docsToUpdate": len(details),
            "fieldsUpdated": fields_updated,
            "invalidFields": invalid_fields,
            "details": details,
        }
