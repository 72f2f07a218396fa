"""
Upload and reconciliation request/response schemas.
"""

from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from parsers.parse_result import MismatchKind


class GroupKey(BaseSchema):
    """Identifies one mismatch group."""

    kind: MismatchKind = Field(..., description="employee, project or project-finished")
    raw_value: str = Field(..., min_length=1, description="Unresolved identifier as normalized")


class CorrectionRequest(GroupKey):
    """Map a group to a catalog entry."""

    catalog_id: str = Field(..., min_length=1, description="proyecto_id or empleado_id")


class IgnoreRequest(GroupKey):
    """Drop (or stop dropping) every row of a group."""

    ignored: bool = Field(default=True)


class MismatchGroupResponse(BaseSchema):
    kind: MismatchKind
    raw_value: str
    rows: list[int]
    count: int
    sheets: list[str]
    correction: Optional[str] = None
    ignored: bool
    resolved: bool
    dropped_shifts: list[str] = Field(default_factory=list)
    context: dict


class GroupUpdateResponse(BaseSchema):
    """Group after a correction/ignore change plus remaining work."""

    group: MismatchGroupResponse
    state: str
    unresolved_count: int


class SaveResponse(BaseSchema):
    success: bool
    message: str
    created: int = 0
    submitted: bool = False
    state: str
