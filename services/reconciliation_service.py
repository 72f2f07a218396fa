"""
Reconciliation of parsed reports before they are saved.

A ReconciliationSession holds one parse result and walks it through:

    IDLE → PARSED ⇄ CORRECTING → SAVING → COMMITTED
                        ↑            │
                        └── failure ─┘

Mismatches are handled per group (kind, raw value): one correction or one
ignore decision settles every row in the group. Correction and ignore are
mutually exclusive for a group. Save is refused while a correctable group
has neither.

reconstruct() maps mismatch + chosen catalog id + catalog
→ transaction candidates, with rates read from the catalog record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol, Union
import uuid
import structlog

from exceptions import (
    InvalidCorrectionError,
    InvalidSessionStateError,
    MismatchGroupNotFoundError,
    TransactionSinkError,
    UnresolvedMismatchesError,
)
from models.catalog import CatalogSnapshot
from parsers.hours_parser import build_hour_candidate, resolve_hours_project
from parsers.parse_result import (
    Candidate,
    Mismatch,
    MismatchKind,
    ParseResult,
    summarize,
    _jsonable,
)
from parsers.sae_parser import build_material_candidate
from utils.text_utils import normalize_identifier

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    PARSED = "parsed"
    CORRECTING = "correcting"
    SAVING = "saving"
    COMMITTED = "committed"


class ReportKind(str, Enum):
    HOURS = "hours"
    SAE = "sae"


class TransactionSink(Protocol):
    def submit_batch(self, kind: str, candidates: list[Candidate]): ...


@dataclass
class SaveResult:
    success: bool
    message: str
    created: int = 0
    submitted: bool = False


@dataclass
class MismatchGroup:
    """All mismatch rows sharing one (kind, raw_value)."""
    kind: MismatchKind
    raw_value: str
    mismatches: list[Mismatch] = field(default_factory=list)
    correction: Optional[str] = None
    ignored: bool = False
    dropped_shifts: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[MismatchKind, str]:
        return (self.kind, self.raw_value)

    @property
    def correctable(self) -> bool:
        return self.kind.correctable

    @property
    def resolved(self) -> bool:
        return not self.correctable or self.ignored or self.correction is not None

    @property
    def first_row(self) -> int:
        return min(m.row_index for m in self.mismatches)

    def to_dict(self) -> dict:
        sheets = sorted({m.sheet_name for m in self.mismatches if m.sheet_name})
        return {
            "kind": self.kind.value,
            "raw_value": self.raw_value,
            "rows": [m.row_index for m in self.mismatches],
            "count": len(self.mismatches),
            "sheets": sheets,
            "correction": self.correction,
            "ignored": self.ignored,
            "resolved": self.resolved,
            "dropped_shifts": list(self.dropped_shifts),
            "context": _jsonable(self.mismatches[0].recovered_context),
        }


def group_mismatches(mismatches: list[Mismatch]) -> list[MismatchGroup]:
    """Group by (kind, raw_value), ordered by smallest contributing row."""
    groups: dict[tuple[MismatchKind, str], MismatchGroup] = {}
    for mismatch in mismatches:
        group = groups.get(mismatch.group_key)
        if group is None:
            group = MismatchGroup(kind=mismatch.kind, raw_value=mismatch.raw_value)
            groups[mismatch.group_key] = group
        group.mismatches.append(mismatch)
    return sorted(groups.values(), key=lambda g: g.first_row)


# ===================
# RECONSTRUCTION
# ===================

def reconstruct(
    mismatch: Mismatch,
    catalog_id: str,
    catalog: CatalogSnapshot,
) -> list[Candidate]:
    """
    Rebuild transaction candidates for a corrected mismatch.

    - project (hours): one hour candidate for the recovered shift
    - project (SAE): one material candidate for the recovered row
    - employee (hours): one hour candidate per recovered shift whose project
      resolves to an open project; other shifts are dropped

    Rates and names come from the catalog record, never from the mismatch.

    Raises:
        InvalidCorrectionError: If catalog_id does not resolve
    """
    context = mismatch.recovered_context

    if mismatch.kind == MismatchKind.UNRESOLVED_PROJECT:
        project = catalog.project(catalog_id)
        if project is None or project.is_finished:
            raise InvalidCorrectionError(
                message=f"Project {catalog_id} is not an open catalog project",
                details={"catalog_id": catalog_id}
            )

        if "employee_id" in context:
            employee = catalog.employee(context["employee_id"])
            if employee is None:
                return []
            return [build_hour_candidate(
                project, employee, context["date"], context["week_number"], context["hours"]
            )]

        return [build_material_candidate(
            project,
            part_number=context["part_number"],
            description=context["description"],
            quantity=context["quantity"],
            unit_cost=context["unit_cost"],
            amount=context["amount"],
            movement_date=context["date"],
            source_sheet=mismatch.sheet_name or "",
        )]

    if mismatch.kind == MismatchKind.UNRESOLVED_EMPLOYEE:
        employee = catalog.employee(catalog_id)
        if employee is None:
            raise InvalidCorrectionError(
                message=f"Employee {catalog_id} is not an active catalog employee",
                details={"catalog_id": catalog_id}
            )

        candidates = []
        for shift in context.get("shifts", []):
            project = resolve_hours_project(catalog, shift["project_token"])
            if project is None or project.is_finished:
                logger.warning(
                    "shift_dropped",
                    employee_id=employee.id,
                    project_token=shift["project_token"],
                    date=shift["date"].isoformat(),
                    reason="project_unresolved" if project is None else "project_finished",
                )
                continue
            candidates.append(build_hour_candidate(
                project, employee, shift["date"], shift["week_number"], shift["hours"]
            ))
        return candidates

    return []


def dropped_shift_tokens(mismatch: Mismatch, catalog: CatalogSnapshot) -> list[str]:
    """Project tokens of an unknown employee's shifts that reconstruct() will skip."""
    if mismatch.kind != MismatchKind.UNRESOLVED_EMPLOYEE:
        return []
    tokens = []
    for shift in mismatch.recovered_context.get("shifts", []):
        project = resolve_hours_project(catalog, shift["project_token"])
        if project is None or project.is_finished:
            tokens.append(shift["project_token"])
    return tokens


# ===================
# SESSION
# ===================

KindLike = Union[MismatchKind, str]


class ReconciliationSession:
    """Correct-or-ignore workflow for one uploaded report."""

    def __init__(
        self,
        report_kind: ReportKind,
        result: ParseResult,
        catalog: CatalogSnapshot,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.report_kind = ReportKind(report_kind)
        self.catalog = catalog
        self.created_at = datetime.now(timezone.utc)
        self.result = result
        self._groups = group_mismatches(result.mismatches)
        self.state = SessionState.PARSED
        self._refresh_state()

        logger.info(
            "reconciliation_session_created",
            session_id=self.session_id,
            report_kind=self.report_kind.value,
            candidates=len(result.candidates),
            groups=len(self.groups()),
            unresolved=len(self.unresolved_groups()),
        )

    # ===================
    # QUERIES
    # ===================

    def groups(self) -> list[MismatchGroup]:
        """Correctable groups, ordered by first row."""
        return [g for g in self._groups if g.correctable]

    def warnings(self) -> list[MismatchGroup]:
        """Informational (finished-project) groups."""
        return [g for g in self._groups if not g.correctable]

    def unresolved_groups(self) -> list[MismatchGroup]:
        return [g for g in self._groups if not g.resolved]

    def get_group(self, kind: KindLike, raw_value: str) -> MismatchGroup:
        """
        Raises:
            MismatchGroupNotFoundError: If no group has this key
        """
        kind = _as_kind(kind)
        key = (kind, normalize_identifier(raw_value))
        for group in self._groups:
            if group.key == key:
                return group
        raise MismatchGroupNotFoundError(kind.value, raw_value)

    # ===================
    # CORRECTIONS
    # ===================

    def correct(self, kind: KindLike, raw_value: str, catalog_id: str) -> MismatchGroup:
        """
        Map a group to a catalog id. Clears any ignore flag.

        Raises:
            InvalidCorrectionError: Non-correctable group, or unknown/finished target
        """
        self._require_editable("correct")
        group = self.get_group(kind, raw_value)
        if not group.correctable:
            raise InvalidCorrectionError(
                message="Finished-project warnings cannot be corrected",
                details={"kind": group.kind.value, "raw_value": group.raw_value}
            )

        group.correction = self._validate_target(group.kind, catalog_id)
        group.ignored = False
        group.dropped_shifts = [
            token
            for mismatch in group.mismatches
            for token in dropped_shift_tokens(mismatch, self.catalog)
        ]
        self._refresh_state()

        logger.info(
            "mismatch_group_corrected",
            session_id=self.session_id,
            kind=group.kind.value,
            raw_value=group.raw_value,
            catalog_id=group.correction,
            rows=len(group.mismatches),
            dropped_shifts=len(group.dropped_shifts),
        )
        return group

    def clear_correction(self, kind: KindLike, raw_value: str) -> MismatchGroup:
        self._require_editable("clear a correction")
        group = self.get_group(kind, raw_value)
        group.correction = None
        group.dropped_shifts = []
        self._refresh_state()
        logger.info(
            "mismatch_correction_cleared",
            session_id=self.session_id,
            kind=group.kind.value,
            raw_value=group.raw_value,
        )
        return group

    def set_ignored(self, kind: KindLike, raw_value: str, ignored: bool = True) -> MismatchGroup:
        """Toggle ignore for a group. Ignoring clears any correction."""
        self._require_editable("ignore")
        group = self.get_group(kind, raw_value)
        if not group.correctable:
            raise InvalidCorrectionError(
                message="Finished-project warnings cannot be ignored",
                details={"kind": group.kind.value, "raw_value": group.raw_value}
            )

        group.ignored = ignored
        if ignored:
            group.correction = None
            group.dropped_shifts = []
        self._refresh_state()

        logger.info(
            "mismatch_group_ignored" if ignored else "mismatch_group_unignored",
            session_id=self.session_id,
            kind=group.kind.value,
            raw_value=group.raw_value,
            rows=len(group.mismatches),
        )
        return group

    # ===================
    # SAVE
    # ===================

    def build_batch(self) -> list[Candidate]:
        """Parsed candidates plus reconstructions of corrected groups."""
        batch = list(self.result.candidates)
        for group in self._groups:
            if group.ignored or group.correction is None:
                continue
            for mismatch in group.mismatches:
                batch.extend(reconstruct(mismatch, group.correction, self.catalog))
        return batch

    def save(self, sink: TransactionSink) -> SaveResult:
        """
        Submit the final batch in one call.

        Raises:
            UnresolvedMismatchesError: Correctable groups still unresolved
            TransactionSinkError: Sink failed; session returns to CORRECTING
        """
        self._require_editable("save")

        unresolved = self.unresolved_groups()
        if unresolved:
            logger.warning(
                "save_rejected_unresolved",
                session_id=self.session_id,
                unresolved=len(unresolved),
            )
            raise UnresolvedMismatchesError(
                [{"kind": g.kind.value, "raw_value": g.raw_value} for g in unresolved]
            )

        self.state = SessionState.SAVING
        try:
            batch = self.build_batch()

            if not batch:
                self.state = SessionState.COMMITTED
                logger.info("save_noop_empty_batch", session_id=self.session_id)
                return SaveResult(success=True, message="No transactions to save")

            outcome = sink.submit_batch(self.report_kind.value, batch)
            if not outcome.success:
                raise TransactionSinkError(
                    message=outcome.message,
                    details={"count": len(batch)}
                )
        except Exception as e:
            self.state = SessionState.CORRECTING
            logger.error("save_failed", session_id=self.session_id, error=str(e))
            raise

        self.state = SessionState.COMMITTED
        logger.info(
            "session_committed",
            session_id=self.session_id,
            submitted=len(batch),
            created=outcome.created,
        )
        return SaveResult(
            success=True,
            message=outcome.message,
            created=outcome.created,
            submitted=True,
        )

    def reset(self) -> None:
        """Discard everything; nothing was committed so nothing to undo."""
        self.result = ParseResult()
        self._groups = []
        self.state = SessionState.IDLE
        logger.info("session_reset", session_id=self.session_id)

    # ===================
    # SERIALIZATION
    # ===================

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "report_kind": self.report_kind.value,
            "state": self.state.value,
            "message": self.result.message,
            "period_start": (
                self.result.period_start.isoformat() if self.result.period_start else None
            ),
            "candidates": [_jsonable(c.to_record()) for c in self.result.candidates],
            "groups": [g.to_dict() for g in self.groups()],
            "warnings": [g.to_dict() for g in self.warnings()],
            "unresolved_count": len(self.unresolved_groups()),
            "summary": summarize(self.result.candidates),
            "created_at": self.created_at.isoformat(),
        }

    # ===================
    # INTERNALS
    # ===================

    def _validate_target(self, kind: MismatchKind, catalog_id: str) -> str:
        if kind == MismatchKind.UNRESOLVED_EMPLOYEE:
            employee = self.catalog.employee(catalog_id)
            if employee is None:
                raise InvalidCorrectionError(
                    message=f"Employee {catalog_id} is not an active catalog employee",
                    details={"catalog_id": catalog_id}
                )
            return employee.id

        project = self.catalog.project(catalog_id)
        if project is None:
            raise InvalidCorrectionError(
                message=f"Project {catalog_id} not found in catalog",
                details={"catalog_id": catalog_id}
            )
        if project.is_finished:
            raise InvalidCorrectionError(
                message=f"Project {project.name} is finished and cannot receive costs",
                details={"catalog_id": catalog_id, "status": project.status.value}
            )
        return project.id

    def _require_editable(self, operation: str) -> None:
        if self.state not in (SessionState.PARSED, SessionState.CORRECTING):
            raise InvalidSessionStateError(self.state.value, operation)

    def _refresh_state(self) -> None:
        if self.state in (SessionState.PARSED, SessionState.CORRECTING):
            self.state = (
                SessionState.CORRECTING if self.unresolved_groups() else SessionState.PARSED
            )


def _as_kind(kind: KindLike) -> MismatchKind:
    if isinstance(kind, MismatchKind):
        return kind
    try:
        return MismatchKind(kind)
    except ValueError:
        raise InvalidCorrectionError(
            message=f"Unknown mismatch kind: {kind}",
            details={"valid": [k.value for k in MismatchKind]}
        )
