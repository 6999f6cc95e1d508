import math

import pytest
from pydantic import ValidationError

from pigmap.db.schemas import CommentCreate, ReportCreate, ReportUpdate


def _report(**overrides):
    data = {"type": "cow", "latitude": 39.1, "longitude": -94.5}
    data.update(overrides)
    return data


def test_defaults():
    report = ReportCreate.model_validate(_report())
    assert report.count == 1
    assert report.description == ""
    assert report.icon is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"type": "dragon"},
        {"latitude": 90.5},
        {"longitude": -180.1},
        {"latitude": math.inf},
        {"longitude": math.nan},
        {"count": 0},
        {"count": 1001},
        {"description": "x" * 5001},
    ],
)
def test_invalid_reports(overrides):
    with pytest.raises(ValidationError):
        ReportCreate.model_validate(_report(**overrides))


def test_legacy_comment_field():
    report = ReportCreate.model_validate(_report(comment="by the fence"))
    assert report.description == "by the fence"


def test_update_fields_optional_but_checked():
    assert ReportUpdate.model_validate({}).model_dump(exclude_none=True) == {}
    assert ReportUpdate.model_validate({"count": 4}).count == 4
    with pytest.raises(ValidationError):
        ReportUpdate.model_validate({"type": "unicorn"})


def test_comment_text_alias_and_strip():
    assert CommentCreate.model_validate({"text": "  loose pig  "}).content == "loose pig"
    assert CommentCreate.model_validate({}).content == ""


def test_null_description_is_empty():
    assert ReportCreate.model_validate(_report(description=None)).description == ""
