"""Per-node scheduling configuration."""

from pydantic import BaseModel, ConfigDict, Field


class NodeConfig(BaseModel):
    """Scheduling policy applied to one node step.

    Attributes:
        max_retries: Maximum number of attempts per step, including the
            first. ``1`` disables retry.
        timeout_seconds: Deadline for each individual attempt.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=1, description="Total attempt count per step")
    timeout_seconds: float = Field(default=30, gt=0, description="Per-attempt deadline in seconds")
