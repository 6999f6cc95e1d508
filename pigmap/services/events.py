"""
Domain events relayed by the live coordinator.

Three kinds flow from the gateway to the coordinator (new_report,
updated_report, new_comment). Each renders to the wire message sent to live
connections; the fourth wire message, "initial", is the cache snapshot sent
once on subscribe.
"""
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from pydantic import ValidationError

from pigmap.db.schemas import Comment, Report, ReportChanges
from pigmap.services.errors import InvalidEventError


@dataclass(frozen=True)
class NewReport:
    report: Report
    kind: ClassVar[str] = "new_report"

    def to_message(self) -> dict[str, Any]:
        return {"type": "new", "report": self.report.to_wire()}


@dataclass(frozen=True)
class UpdatedReport:
    """A full row from the gateway, or a partial one (``id`` plus changed fields)."""

    report: Union[Report, ReportChanges]
    kind: ClassVar[str] = "updated_report"

    def to_message(self) -> dict[str, Any]:
        return {"type": "update", "report": self.report.to_wire()}


@dataclass(frozen=True)
class NewComment:
    report_id: str
    comment: Comment
    kind: ClassVar[str] = "new_comment"

    def __post_init__(self) -> None:
        owner = self.comment.report_id
        if owner is None:
            object.__setattr__(
                self, "comment", self.comment.model_copy(update={"report_id": self.report_id})
            )
        elif owner != self.report_id:
            raise InvalidEventError(
                f"Comment {self.comment.id} belongs to report {owner}, not {self.report_id}"
            )

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "comment",
            "reportId": self.report_id,
            "comment": self.comment.to_wire(),
        }


DomainEvent = Union[NewReport, UpdatedReport, NewComment]
EVENT_KINDS = ("new_report", "updated_report", "new_comment")


def initial_message(
    reports: list[Report], comments: Mapping[str, list[Comment]]
) -> dict[str, Any]:
    return {
        "type": "initial",
        "reports": [r.to_wire() for r in reports],
        "comments": {rid: [c.to_wire() for c in items] for rid, items in comments.items()},
    }


def parse_event(data: Any) -> DomainEvent:
    """
    Build a typed event from the tagged form ``{"kind": ..., "payload": {...}}``.

    An updated_report payload needs only ``id`` plus the changed fields. A
    new_comment payload is the comment itself carrying ``reportId``.
    Raises InvalidEventError for unknown kinds or payloads that fail validation.
    """
    if not isinstance(data, Mapping):
        raise InvalidEventError("Event must be an object with 'kind' and 'payload'")
    kind = data.get("kind")
    payload = data.get("payload")
    if kind not in EVENT_KINDS:
        raise InvalidEventError(f"Unknown event kind: {kind!r}")
    if not isinstance(payload, Mapping):
        raise InvalidEventError(f"Event {kind!r} has no payload object")
    try:
        if kind == "new_report":
            return NewReport(Report.model_validate(payload))
        if kind == "updated_report":
            return UpdatedReport(ReportChanges.model_validate(payload))
        comment = Comment.model_validate(payload)
    except ValidationError as exc:
        raise InvalidEventError(f"Invalid {kind} payload: {exc.errors()[0]['msg']}") from exc
    if not comment.report_id:
        raise InvalidEventError("new_comment payload is missing reportId")
    return NewComment(comment.report_id, comment)
