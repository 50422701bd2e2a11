"""Analytics snapshot model embedded in curation session records."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsSnapshot(BaseModel):
    """Aggregate metrics over a session's item collection at a point in time."""

    total_items: int = 0
    completed_items: int = 0
    error_count: int = 0
    total_tokens: float = 0
    total_cost: float = 0.0
    avg_response_time: float = 0.0
    success_rate: float = 0.0  # Percentage (0-100)
    last_updated: datetime = Field(default_factory=utc_now)

    def metrics(self) -> dict[str, float]:
        """Headline metrics shown next to the session."""
        return {
            "total_tokens": self.total_tokens,
            "total_cost": self.total_cost,
            "avg_response_time": self.avg_response_time,
            "success_rate": self.success_rate,
        }
