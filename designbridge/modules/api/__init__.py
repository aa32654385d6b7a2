"""
API Module - Black Box Interface

Purpose: Data models for the executor-facing HTTP endpoints
Interface: CommandResult, PolledCommandResponse, AckResponse, HealthResponse
Hidden: Validation rules

The API only orchestrates; queueing and correlation live in the broker module.
"""

from .models import AckResponse, CommandResult, HealthResponse, PolledCommandResponse

__all__ = [
    "AckResponse",
    "CommandResult",
    "HealthResponse",
    "PolledCommandResponse",
]
