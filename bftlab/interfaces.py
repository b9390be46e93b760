"""Event handlers that a consensus protocol implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from bftlab.base_types import NodeTime


@dataclass
class NodeUpdateActions:
    """Actions required after `ConsensusNode.update_node`."""

    next_scheduled_update: NodeTime = field(default_factory=NodeTime.never)
    """Time at which to call `update_node` again, at the latest."""
    should_send: list = field(default_factory=list)
    """Nodes to send a notification to."""
    should_broadcast: bool = False
    """Whether to send a notification to all other nodes."""
    should_query_all: bool = False
    """Whether to request data from all other nodes."""


class ConsensusNode(ABC):
    """Core event handlers of a consensus node."""

    @classmethod
    @abstractmethod
    async def load_node(cls, context: Any, clock: NodeTime) -> ConsensusNode:
        """Read data from storage and build the in-memory node."""

    @abstractmethod
    def update_node(self, context: Any, clock: NodeTime) -> NodeUpdateActions:
        """Run one step of the protocol, staging changes on the node."""

    @abstractmethod
    async def save_node(self, context: Any) -> None:
        """Persist the staged node state."""


class DataSyncNode(ABC):
    """Network event handlers of a consensus node."""

    @abstractmethod
    def create_notification(self, context: Any) -> Any:
        """What to send to start a data-synchronization exchange."""

    @abstractmethod
    def create_request(self, context: Any) -> Any:
        """What to send to query data from another node."""

    @abstractmethod
    async def handle_request(self, context: Any, request: Any) -> Any:
        """Answer a request from another node."""

    @abstractmethod
    async def handle_notification(self, context: Any, notification: Any) -> Optional[Any]:
        """Accept or refuse a notification, possibly returning a request."""

    @abstractmethod
    async def handle_response(self, context: Any, response: Any, clock: NodeTime) -> None:
        """Receive data from another node."""