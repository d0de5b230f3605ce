"""Bulk lead import from CSV."""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from crm_pro.errors import ImportValidationError
from crm_pro.models import Lead, LeadStatus

log = structlog.get_logger(__name__)

LEAD_IMPORT_FIELDS = (
    "name",
    "email",
    "mobile",
    "source",
    "status",
    "stage",
    "notes",
    "company_name",
    "contact_name",
)
REQUIRED_FIELDS = ("name", "email")

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
_STATUS_VALUES = ", ".join(s.value for s in LeadStatus)


@dataclass
class RowIssue:
    line: int
    row: list[str]
    message: str


@dataclass
class ImportPlan:
    """Rows ready to insert, rows rejected, and rows accepted with a warning."""

    leads: list[dict[str, Any]] = field(default_factory=list)
    errors: list[RowIssue] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)


@dataclass
class ImportResult:
    created: list[Lead]
    plan: ImportPlan

    @property
    def success_count(self) -> int:
        return len(self.created)

    @property
    def error_count(self) -> int:
        return len(self.plan.errors)


def parse_csv(text: str) -> tuple[list[str], list[list[str]]]:
    """Split CSV text into a header row and data rows. Blank rows are skipped.

    Quoted values may span lines, including empty ones.
    """
    reader = csv.reader(io.StringIO(text))
    parsed = [[value.strip() for value in row] for row in reader]
    parsed = [row for row in parsed if any(row)]
    if len(parsed) < 2:
        raise ImportValidationError("CSV file must have a header row and at least one data row.")
    return parsed[0], parsed[1:]


def _key(name: str) -> str:
    return name.replace("_", " ").strip().lower()


def auto_map(headers: Sequence[str]) -> dict[str, str | None]:
    """Match CSV headers to lead fields, ignoring case and ``_`` vs space."""
    fields = {_key(f): f for f in LEAD_IMPORT_FIELDS}
    return {header: fields.get(_key(header)) for header in headers}


def _check_mapping(mapping: Mapping[str, str | None]) -> None:
    mapped = set(mapping.values())
    missing = [f for f in REQUIRED_FIELDS if f not in mapped]
    if missing:
        raise ImportValidationError(
            f"You must map columns to the following required fields: {', '.join(REQUIRED_FIELDS)}."
        )
    unknown = sorted(v for v in mapped if v and v not in LEAD_IMPORT_FIELDS)
    if unknown:
        raise ImportValidationError(f"Unknown lead fields in mapping: {', '.join(unknown)}")


def build_import(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    mapping: Mapping[str, str | None] | None = None,
) -> ImportPlan:
    """Validate every row against ``mapping`` (``auto_map`` by default).

    A missing required value or a malformed email rejects the row. An
    unrecognised status is replaced with ``New`` and reported as a warning.
    """
    mapping = dict(mapping) if mapping is not None else auto_map(headers)
    _check_mapping(mapping)

    plan = ImportPlan()
    # Line 1 is the header.
    for line, row in enumerate(rows, start=2):
        lead: dict[str, Any] = {}
        for index, header in enumerate(headers):
            target = mapping.get(header)
            if target and index < len(row):
                lead[target] = row[index]

        problems = [
            f"Missing required field '{f}'." for f in REQUIRED_FIELDS if not lead.get(f, "").strip()
        ]
        email = lead.get("email")
        if email and not _EMAIL_RE.search(email):
            problems.append("Invalid email format.")
        if problems:
            plan.errors.append(RowIssue(line, list(row), " ".join(problems)))
            continue

        status = lead.get("status")
        if status:
            try:
                lead["status"] = LeadStatus(status)
            except ValueError:
                plan.warnings.append(
                    RowIssue(
                        line,
                        list(row),
                        f"Invalid status '{status}', defaulted to New. Must be one of: {_STATUS_VALUES}.",
                    )
                )
                lead["status"] = LeadStatus.NEW
        else:
            lead["status"] = LeadStatus.NEW

        plan.leads.append({k: v for k, v in lead.items() if v != ""})
    return plan


async def import_leads(
    leads_service,
    text: str,
    org_id: str,
    mapping: Mapping[str, str | None] | None = None,
) -> ImportResult:
    """Parse, validate and bulk-insert. Rejected rows are skipped, not raised."""
    headers, rows = parse_csv(text)
    plan = build_import(headers, rows, mapping)
    created = await leads_service.bulk_add(plan.leads, org_id) if plan.leads else []
    log.info(
        "leads_imported",
        org_id=org_id,
        created=len(created),
        rejected=len(plan.errors),
        warnings=len(plan.warnings),
    )
    return ImportResult(created=created, plan=plan)
