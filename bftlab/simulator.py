"""Discrete-event simulation of a consensus protocol over a randomized network."""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from bftlab.base_types import Duration, NodeTime, Round
from bftlab.data_writer import DataWriter
from bftlab.events import (
    ActiveRound,
    DataSyncNotifyEvent,
    DataSyncRequestEvent,
    DataSyncResponseEvent,
    Event,
    GlobalTime,
    RandomDelay,
    UpdateTimerEvent,
    event_kind,
)
from bftlab.interfaces import NodeUpdateActions
from bftlab.rng import Xoshiro256StarStar
from bftlab.simulated_context import Author

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _block_on(awaitable: Awaitable[R]) -> R:
    """Drive an awaitable that never waits on anything external to completion."""
    iterator = awaitable.__await__()
    while True:
        try:
            yielded = iterator.send(None)
        except StopIteration as stop:
            return stop.value
        if yielded is not None:
            iterator.close()
            raise RuntimeError("simulated nodes must not wait on external events")


@dataclass
class SimulatedNode(ActiveRound):
    """A node of the simulation together with its context and local clock offset."""

    startup_time: GlobalTime
    ignore_scheduled_updates_until: GlobalTime
    node: Any
    context: Any

    def update(self, global_clock: GlobalTime) -> NodeUpdateActions:
        """Run `update_node` at the local time matching `global_clock`."""
        local_clock = global_clock.to_node_time(self.startup_time)
        return self.node.update_node(self.context, local_clock)

    def active_round(self) -> Round:
        return self.node.active_round()


class Simulator:
    """Simulate the execution of a consensus protocol over a randomized network."""

    def __init__(
        self,
        node_class: Any,
        rng_seed: int,
        num_nodes: int,
        network_delay: RandomDelay,
        context_factory: Callable[[Author, int], Any],
    ) -> None:
        self.clock = GlobalTime(0)
        self.network_delay = network_delay
        self._pending_events: list[tuple[GlobalTime, int, int, Event]] = []
        self._event_count = 0
        self._rng = Xoshiro256StarStar(rng_seed)
        self._nodes: list[SimulatedNode] = []
        for index in range(num_nodes):
            author = Author(index)
            context = context_factory(author, num_nodes)
            startup_time = self.clock.add_delay(self._rng, network_delay) + Duration(1)
            node_time = NodeTime(0)
            scheduled_time = GlobalTime.from_node_time(node_time, startup_time)
            node = _block_on(node_class.load_node(context, node_time))
            self._schedule_event(scheduled_time, UpdateTimerEvent(author))
            self._nodes.append(
                SimulatedNode(
                    startup_time=startup_time,
                    ignore_scheduled_updates_until=startup_time + Duration(-1),
                    node=node,
                    context=context,
                )
            )

    def simulated_node(self, author: Author) -> SimulatedNode:
        """The simulated node of `author`; IndexError if there is none."""
        if not 0 <= author.value < len(self._nodes):
            raise IndexError(f"no simulated node for {author!r}")
        return self._nodes[author.value]

    def _schedule_event(self, scheduled_time: GlobalTime, event: Event) -> None:
        logger.debug("Scheduling event %r for %r", event, scheduled_time)
        # Earliest time first; on ties, higher event kinds first, then creation order.
        heapq.heappush(
            self._pending_events,
            (scheduled_time, -event_kind(event), self._event_count, event),
        )
        self._event_count += 1

    def _schedule_network_event(self, event: Event) -> None:
        scheduled_time = self.clock.add_delay(self._rng, self.network_delay)
        self._schedule_event(scheduled_time, event)

    def _other_authors(self, author: Author) -> list[Author]:
        return [Author(index) for index in range(len(self._nodes)) if index != author.value]

    def _process_node_actions(
        self, clock: GlobalTime, author: Author, actions: NodeUpdateActions
    ) -> None:
        logger.debug("@%r Processing node actions for %r: %r", clock, author, actions)
        node = self.simulated_node(author)
        _block_on(node.node.save_node(node.context))

        new_scheduled_time = max(
            GlobalTime.from_node_time(actions.next_scheduled_update, node.startup_time),
            # Strictly in the future, so that it is not cancelled just below.
            clock + Duration(1),
        )
        # Earlier scheduled updates stay in the queue but are now ignored.
        node.ignore_scheduled_updates_until = new_scheduled_time + Duration(-1)
        self._schedule_event(new_scheduled_time, UpdateTimerEvent(author))

        if actions.should_broadcast:
            receivers = self._other_authors(author)
        else:
            receivers = [receiver for receiver in actions.should_send if receiver != author]
        self._rng.shuffle(receivers)
        notification = node.node.create_notification(node.context)
        for receiver in receivers:
            self._schedule_network_event(
                DataSyncNotifyEvent(receiver=receiver, sender=author, notification=notification)
            )

        senders = self._other_authors(author) if actions.should_query_all else []
        request = node.node.create_request(node.context)
        self._rng.shuffle(senders)
        for sender in senders:
            self._schedule_network_event(
                DataSyncRequestEvent(receiver=author, sender=sender, request=request)
            )

    def loop_until(self, max_clock: GlobalTime, csv_path: Optional[str] = None) -> list:
        """Process events up to `max_clock` and return the contexts of all nodes.

        When `csv_path` is given, round switches and message counts are written there.
        """
        data_writer = DataWriter(len(self._nodes), csv_path) if csv_path is not None else None

        while self._pending_events:
            clock, _, _, event = heapq.heappop(self._pending_events)
            if clock > max_clock:
                break

            if data_writer is not None:
                data_writer.update_round_number(self, clock)
                data_writer.add_message_counter(event)

            # Events scheduled in the past are fine but they do not move the clock back.
            clock = max(clock, self.clock)
            self.clock = clock
            logger.debug("@%r Processing event %r", clock, event)

            if isinstance(event, UpdateTimerEvent):
                node = self.simulated_node(event.author)
                if clock <= node.ignore_scheduled_updates_until:
                    logger.debug("@%r Timer was cancelled: %r", clock, event)
                    continue
                actions = node.update(clock)
                logger.debug("Node state: %r", node)
                self._process_node_actions(clock, event.author, actions)
            elif isinstance(event, DataSyncNotifyEvent):
                node = self.simulated_node(event.receiver)
                request = _block_on(
                    node.node.handle_notification(node.context, event.notification)
                )
                actions = node.update(clock)
                if request is not None:
                    self._schedule_network_event(
                        DataSyncRequestEvent(
                            receiver=event.receiver, sender=event.sender, request=request
                        )
                    )
                logger.debug("Node state: %r, node index: %r", node, event.receiver)
                self._process_node_actions(clock, event.receiver, actions)
            elif isinstance(event, DataSyncRequestEvent):
                node = self.simulated_node(event.receiver)
                response = _block_on(node.node.handle_request(node.context, event.request))
                self._schedule_network_event(
                    DataSyncResponseEvent(
                        receiver=event.receiver, sender=event.sender, response=response
                    )
                )
            else:
                node = self.simulated_node(event.receiver)
                local_clock = clock.to_node_time(node.startup_time)
                _block_on(node.node.handle_response(node.context, event.response, local_clock))
                actions = node.update(clock)
                logger.debug("Node state: %r", node)
                self._process_node_actions(clock, event.receiver, actions)

        if data_writer is not None:
            data_writer.write_to_file()

        return [node.context for node in self._nodes]