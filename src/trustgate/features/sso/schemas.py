"""Response schemas for the signed handoff endpoint."""

from pydantic import BaseModel, ConfigDict, Field

from src.trustgate.features.auth.schemas import UserResponse


class SSOLoginResponse(BaseModel):
    """Session issued for a verified handoff, plus the untouched order number."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    user: UserResponse
    order_no: str | None = Field(default=None, alias="orderNo")
