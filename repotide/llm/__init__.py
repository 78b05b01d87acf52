from .client import ChunkCallback, CompleteCallback, CompletionClient
from .resilience import ConnectivityMonitor, ResilientCompletionClient, as_messages

__all__ = [
    "ChunkCallback",
    "CompleteCallback",
    "CompletionClient",
    "ConnectivityMonitor",
    "ResilientCompletionClient",
    "as_messages"
]
