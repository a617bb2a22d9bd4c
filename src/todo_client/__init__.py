"""Client-side state synchronization for a remote todo service."""

from .app import TodoClient, create_client

__all__ = ["TodoClient", "create_client"]
