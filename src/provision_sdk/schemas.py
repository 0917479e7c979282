"""Wire and storage schemas for the provisioning API."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AccountStatus = Literal["success", "failed"]

MIN_BATCH_COUNT = 1
MAX_BATCH_COUNT = 50


class Account(BaseModel):
    # Consumed verbatim: unknown keys survive storage and export.
    model_config = ConfigDict(extra="allow", frozen=True)

    email: str
    password: str
    promo_code: str
    status: AccountStatus
    created_at: str
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class ApiStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str


class CreateAccountsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    promo_code: str = Field(..., pattern=r"^[0-9]{6}$")
    count: int = Field(..., ge=MIN_BATCH_COUNT, le=MAX_BATCH_COUNT)
    user_id: Optional[str] = None


class CreateAccountsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    user_id: Optional[str] = None
    accounts: List[Account] = Field(default_factory=list)
    created: Optional[int] = None
    error: Optional[str] = None


class GetAccountsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    user_id: Optional[str] = None
    accounts: List[Account] = Field(default_factory=list)
    error: Optional[str] = None


class StoredSession(BaseModel):
    """Persisted working session, stored as ``{userId, accounts, lastUpdated}``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    accounts: List[Account]
    last_updated: str = Field(..., alias="lastUpdated")
