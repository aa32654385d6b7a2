"""
HTTP data models for the executor-facing API.

These models define the JSON exchanged with the design plugin when it
polls for work and posts results back.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CommandResult(BaseModel):
    """Outcome posted by the executor for a command it ran."""

    success: bool = Field(..., description="Whether the operation succeeded")
    result: Any = Field(None, description="Operation result, on success")
    error: Optional[str] = Field(None, description="Failure message, on failure")


class PolledCommandResponse(BaseModel):
    """Oldest pending command, as handed to the executor."""

    id: str = Field(..., description="Correlation id to post the result against")
    kind: str = Field(..., description="Operation name")
    payload: Any = Field(None, description="Operation arguments")


class AckResponse(BaseModel):
    """Acknowledgement of an accepted result."""

    ok: bool = True


class HealthResponse(BaseModel):
    """Liveness and capacity report."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    pending_commands: int = Field(..., alias="pendingCommands")
    capacity: int
