"""Load the workflow policy (done/descoped statuses, field names) from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import DESCOPED_STATUSES, DONE_STATUS, MEMBERSHIP_FIELD, SETTINGS, STATUS_FIELD

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class WorkflowPolicy:
    done_status: str = DONE_STATUS
    descoped_statuses: frozenset[str] = field(default_factory=lambda: DESCOPED_STATUSES)
    status_field: str = STATUS_FIELD
    membership_field: str = MEMBERSHIP_FIELD


_CACHE: WorkflowPolicy | None = None


def load_workflow_policy(base_path: str | Path | None = None, *, refresh: bool = False) -> WorkflowPolicy:
    """Read ``workflow.yaml`` from ``base_path`` (default: the package root).

    Missing files and missing keys fall back to the constants in
    ``config.py``. A file that is present but unreadable is logged and
    ignored.
    """
    global _CACHE
    if _CACHE is not None and not refresh and base_path is None:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / SETTINGS.workflow_file
    policy = WorkflowPolicy()
    if yaml_path.exists():
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except yaml.YAMLError as exc:
            logger.warning("Ignoring unreadable workflow file %s: %s", yaml_path, exc)
            data = {}
        statuses = data.get("statuses", {}) or {}
        fields = data.get("fields", {}) or {}
        descoped = statuses.get("descoped")
        policy = WorkflowPolicy(
            done_status=statuses.get("done") or DONE_STATUS,
            descoped_statuses=frozenset(descoped) if descoped is not None else DESCOPED_STATUSES,
            status_field=fields.get("status") or STATUS_FIELD,
            membership_field=fields.get("membership") or MEMBERSHIP_FIELD,
        )
    if base_path is None:
        _CACHE = policy
    return policy
