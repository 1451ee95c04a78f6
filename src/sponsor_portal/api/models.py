"""Request bodies for the JSON endpoints.

Fields are loosely typed on purpose: format checks live in
``sponsor_portal.validation`` so every endpoint reports the same messages.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VerifyRequest(_ApiModel):
    email: Any = None
    sponsor_code: Any = Field(default=None, alias="sponsorCode")


class CheckoutRequestBody(_ApiModel):
    amount: Any = None
    email: Any = None
    name: Any = None
    is_monthly: Any = Field(default=False, alias="isMonthly")


class PhotoPayload(_ApiModel):
    url: str
    filename: str | None = None


class ReviewRequest(_ApiModel):
    reviewed_by: Any = Field(default=None, alias="reviewedBy")


class RejectRequest(ReviewRequest):
    reason: Any = None


class CorrectionNotesRequest(ReviewRequest):
    notes: Any = None


class CorrectionRequest(_ApiModel):
    title: Any = None
    content: Any = None
    submitted_by: Any = Field(default=None, alias="submittedBy")
    update_type: Any = Field(default=None, alias="updateType")
    photos: list[PhotoPayload] = Field(default_factory=list)
