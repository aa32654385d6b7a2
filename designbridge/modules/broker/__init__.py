"""
Broker Module - Black Box Interface

Purpose: Correlate tool calls with results posted by a polling executor
Interface: submit(), execute(), poll_next(), complete(), sweep(), start(), stop()
Hidden: Queue layout, id generation, timeout bookkeeping

Commands live in memory only; a restart drops whatever was pending.
"""

from .broker import (
    BrokerStats,
    CommandBroker,
    CommandOutcome,
    CommandTicket,
    PendingCommand,
    PolledCommand,
)
from .errors import BrokerError, CommandTimeoutError, ExecutorReportedFailure, QueueFullError

__all__ = [
    "BrokerError",
    "BrokerStats",
    "CommandBroker",
    "CommandOutcome",
    "CommandTicket",
    "CommandTimeoutError",
    "ExecutorReportedFailure",
    "PendingCommand",
    "PolledCommand",
    "QueueFullError",
]
