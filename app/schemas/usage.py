"""Pydantic schema for persisted per-identity usage statistics."""

from pydantic import BaseModel, ConfigDict, Field


class UsageRecord(BaseModel):
    """Usage counters stored under ``user_stats:<identity>``.

    Field aliases match the stored JSON (camelCase).
    """

    model_config = ConfigDict(populate_by_name=True)

    created_at: int = Field(
        ...,
        alias="createdAt",
        description="Epoch milliseconds when the record was first written.",
    )
    total_requests: int = Field(
        0,
        alias="totalRequests",
        ge=0,
        description="Cumulative admitted requests.",
    )
    last_request_at: int | None = Field(
        None,
        alias="lastRequestAt",
        description="Epoch milliseconds of the last admitted request.",
    )
    daily_requests: dict[str, int] = Field(
        default_factory=dict,
        alias="dailyRequests",
        description="Admitted requests per UTC calendar date (YYYY-MM-DD).",
    )
