"""
Connection status tracking for voice sessions.

Connection lifecycle is tracked separately from the pipeline state machine.
This is pure data owned by SessionGateway.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Connection lifecycle status.

    Independent of PipelineState: a session can be IDLE while UP, and a
    cycle can still be unwinding after the socket went DOWN.
    """
    DOWN = "DOWN"           # Not connected (never connected, or closed)
    UP = "UP"               # Active WebSocket connection
