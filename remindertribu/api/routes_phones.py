"""Phone normalization endpoints over stored member contact fields."""
from typing import Any

from fastapi import APIRouter, Query

from remindertribu.api.dependencies import PhoneApplyRunnerDep, SettingsDep
from remindertribu.core.config import split_csv
from remindertribu.core.exceptions import ValidationError

router = APIRouter(tags=["phones"])


def _field_names(fields: str | None, default: list[str]) -> list[str]:
    if fields is None:
        return default
    try:
        return split_csv(fields)
    except ValueError as exc:
        raise ValidationError(str(exc), field="fields") from exc


@router.get("/phones-preview")
def phones_preview(
    runner: PhoneApplyRunnerDep,
    settings: SettingsDep,
    limit: int = Query(200, description="Members to scan, clamped to 1-1000"),
    fields: str | None = Query(None, description="Comma separated field names"),
) -> dict[str, Any]:
    names = _field_names(fields, settings.phone_normalize_fields)
    return runner.preview(names, limit)


@router.api_route("/phones-apply", methods=["GET", "POST"])
def phones_apply(
    runner: PhoneApplyRunnerDep,
    settings: SettingsDep,
    limit: int = Query(100, description="Members to scan, clamped to 1-500"),
    fields: str | None = Query(None, description="Comma separated field names"),
    dry_run: bool = Query(False, alias="dryRun"),
) -> dict[str, Any]:
    names = _field_names(fields, settings.phone_normalize_fields)
    return runner.run(
        names,
        limit,
        apply_allowed=settings.ALLOW_PHONE_APPLY,
        dry_run_requested=dry_run,
    )
