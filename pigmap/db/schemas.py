"""Report/comment schemas shared by the API and the live coordinator.

Attributes are snake_case; the JSON wire format is camelCase (``mediaUrl``,
``reportId``, ``editToken``) through the alias generator.
"""
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from pigmap.core.config import settings


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Report(CamelModel):
    """One geotagged report as cached and broadcast."""

    id: str
    type: str
    description: str = ""
    count: int = 1
    latitude: float
    longitude: float
    timestamp: int
    icon: Optional[str] = None
    media_url: Optional[str] = None


class ReportChanges(CamelModel):
    """Partial report for update events; absent fields keep their cached values."""

    id: str
    type: Optional[str] = None
    description: Optional[str] = None
    count: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[int] = None
    icon: Optional[str] = None
    media_url: Optional[str] = None


class Comment(CamelModel):
    id: str
    report_id: Optional[str] = None
    content: str = ""
    media_url: Optional[str] = None
    timestamp: int


def _check_type(value: str) -> str:
    if value not in settings.REPORT_TYPES:
        raise ValueError("Invalid or missing type")
    return value


def _check_count(value: int) -> int:
    if not 1 <= value <= settings.MAX_COUNT:
        raise ValueError("Invalid count")
    return value


def _check_text(value: str) -> str:
    if len(value) > settings.MAX_TEXT_LENGTH:
        raise ValueError("Text too long")
    return value


ReportType = Annotated[str, AfterValidator(_check_type)]
ReportCount = Annotated[int, AfterValidator(_check_count)]
FreeText = Annotated[str, AfterValidator(_check_text)]


class ReportCreate(CamelModel):
    """Client payload for a new report (the ``report`` form field)."""

    model_config = ConfigDict(allow_inf_nan=False)

    type: ReportType
    description: FreeText = ""
    count: ReportCount = 1
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    icon: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_comment(cls, data: Any) -> Any:
        # Older clients send the free text as "comment".
        if isinstance(data, dict) and "description" not in data and "comment" in data:
            data = dict(data)
            data["description"] = data.pop("comment") or ""
        return data

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value: Any) -> Any:
        return "" if value is None else value


class ReportUpdate(CamelModel):
    """Mutable report fields; identifier and position cannot change."""

    type: Optional[ReportType] = None
    count: Optional[ReportCount] = None
    description: Optional[FreeText] = None


class ReportUpdateRequest(CamelModel):
    report: ReportUpdate
    edit_token: Optional[str] = None


class CommentCreate(CamelModel):
    content: FreeText = ""

    @model_validator(mode="before")
    @classmethod
    def _legacy_text(cls, data: Any) -> Any:
        if isinstance(data, dict) and "content" not in data and "text" in data:
            data = dict(data)
            data["content"] = data.pop("text") or ""
        return data

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class WriteOut(CamelModel):
    """Response for writes; ``live`` is False when the write committed but live fan-out is degraded."""

    success: bool = True
    id: Optional[str] = None
    live: bool = True
    warning: Optional[str] = None


class ReportCreatedOut(WriteOut):
    edit_token: str
    message: str = "Keep this token to edit your report. This is the only time you will see it!"
