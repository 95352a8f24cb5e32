"""Mapping raw Jira issue JSON into TrackedEntity instances."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from .changelog import ChangeEntry, ChangeLog
from .config import FIELD_IDS, HOURS_PER_WORKING_DAY, SECONDS_PER_HOUR, SETTINGS
from .errors import InvalidEntityError
from .models import TrackedEntity


def parse_dt(val):
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _name(node: Any) -> str | None:
    if isinstance(node, dict):
        return node.get("name")
    return None


def _flatten_histories(histories: list[dict[str, Any]], key: str | None) -> list[ChangeEntry]:
    entries: list[ChangeEntry] = []
    for h in histories:
        created = parse_dt(h.get("created"))
        for item in h.get("items") or []:
            if created is None:
                raise InvalidEntityError(
                    f"history item for field {item.get('field')!r} has no timestamp", key
                )
            entries.append(
                ChangeEntry(
                    occurred_at=created,
                    field=item.get("field"),
                    from_value=item.get("fromString"),
                    to_value=item.get("toString"),
                )
            )
    return entries


def map_issue(raw: dict[str, Any], *, server: str | None = None) -> TrackedEntity:
    """Normalize one Jira REST issue (with ``expand=changelog``) into an entity.

    Raises
    ------
    InvalidEntityError
        If the issue has no creation timestamp or a change log entry is
        undated or predates creation.
    """
    fields = raw.get("fields") or {}
    key = raw.get("key")
    created = parse_dt(fields.get("created"))
    if created is None:
        raise InvalidEntityError("issue has no creation timestamp", key)

    histories_raw = (raw.get("changelog") or {}).get("histories", []) or []
    change_log = ChangeLog(_flatten_histories(histories_raw, key), entity_key=key, created_at=created)

    timespent = fields.get("timespent")
    server = (server or SETTINGS.tracker_server or "").rstrip("/")
    return TrackedEntity(
        key=key,
        created_at=created,
        current_status=_name(fields.get("status")),
        change_log=change_log,
        resolved_at=parse_dt(fields.get("resolutiondate")),
        summary=fields.get("summary"),
        issue_type=_name(fields.get("issuetype")),
        start_date=parse_dt(fields.get(FIELD_IDS["start_date"])),
        due_date=parse_dt(fields.get("duedate")),
        timespent_days=timespent / SECONDS_PER_HOUR / HOURS_PER_WORKING_DAY if timespent else None,
        url=f"{server}/browse/{key}" if server else None,
    )


def map_issues(raws: Iterable[dict[str, Any]], *, server: str | None = None) -> list[TrackedEntity]:
    return [map_issue(r, server=server) for r in raws]


def entities_to_dataframe(entities: Iterable[TrackedEntity]) -> pd.DataFrame:
    rows = []
    for e in entities:
        rows.append(
            {
                "key": e.key,
                "summary": e.summary,
                "status": e.current_status,
                "issuetype": e.issue_type,
                "created": e.created_at,
                "resolution_date": e.resolved_at,
                "timespent_days": e.timespent_days,
                "changes": len(e.change_log),
                "url": e.url,
            }
        )
    return pd.DataFrame(rows)
