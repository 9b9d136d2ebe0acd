"""
API request schemas for campaign statistics resolution.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from mailstats.schemas.internal import Account, Campaign


class AccountInfo(BaseModel):
    """Acelle account credentials used to reach the upstream API."""

    id: str = Field(..., description="Account identifier")
    api_endpoint: str = Field("", description="Acelle API base URL (e.g. https://mail.example.com/api/v1)")
    api_token: str = Field("", description="Acelle API token")
    name: str = Field("", description="Account display name")
    status: str = Field("active", description="Account status")

    def to_internal(self) -> Account:
        return Account(
            id=self.id,
            api_endpoint=self.api_endpoint,
            api_token=self.api_token,
            name=self.name,
            status=self.status,
        )


class ResolveRequest(BaseModel):
    """Resolve statistics for a single campaign."""

    campaign: dict[str, Any] = Field(
        ..., description="Campaign as listed upstream (uid, name, status, statistics, delivery_info, ...)"
    )
    account: AccountInfo | None = Field(None, description="Account owning the campaign")
    force_refresh: bool = Field(False, description="Bypass embedded statistics and the cache")
    demo_mode: bool = Field(False, description="Serve synthetic statistics without any I/O")

    def to_campaign(self) -> Campaign:
        return Campaign.from_dict(self.campaign)

    model_config = {
        "json_schema_extra": {
            "example": {
                "campaign": {"uid": "5f8a1c2b3d4e5", "name": "October newsletter", "status": "sent"},
                "account": {
                    "id": "acc_1",
                    "api_endpoint": "https://mail.example.com/api/v1",
                    "api_token": "token",
                },
                "force_refresh": False,
                "demo_mode": False,
            }
        }
    }


class EnrichRequest(BaseModel):
    """Resolve statistics for a page of campaigns."""

    campaigns: list[dict[str, Any]] = Field(default_factory=list, description="Campaigns to enrich")
    account: AccountInfo | None = Field(None, description="Account owning the campaigns")
    force_refresh: bool = Field(False, description="Bypass embedded statistics and the cache")
    demo_mode: bool = Field(False, description="Serve synthetic statistics without any I/O")

    def to_campaigns(self) -> list[Campaign]:
        return [Campaign.from_dict(c) for c in self.campaigns]


class SummaryRequest(BaseModel):
    """Aggregate statistics over campaigns."""

    campaigns: list[dict[str, Any]] = Field(default_factory=list, description="Campaigns to summarize")

    def to_campaigns(self) -> list[Campaign]:
        return [Campaign.from_dict(c) for c in self.campaigns]
