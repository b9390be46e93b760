import asyncio

import pytest

from bftlab.base_types import Duration, NodeTime, Round
from bftlab.events import ActiveRound, GlobalTime, RandomDelay
from bftlab.interfaces import ConsensusNode, DataSyncNode, NodeUpdateActions
from bftlab.simulated_context import Author, SimulatedContext
from bftlab.simulator import Simulator


class ToyNode(ConsensusNode, DataSyncNode, ActiveRound):
    period = 100
    broadcast = True
    query_all = False
    send_to: list = []
    answer_notifications = False

    def __init__(self, author):
        self.author = author
        self.round = Round(0)
        self.clocks = []
        self.notifications = []
        self.responses = []

    @classmethod
    async def load_node(cls, context, clock):
        return cls(context.author())

    def update_node(self, context, clock):
        self.clocks.append(clock)
        self.round = self.round + 1
        return NodeUpdateActions(
            next_scheduled_update=clock + Duration(self.period),
            should_send=list(self.send_to),
            should_broadcast=self.broadcast,
            should_query_all=self.query_all,
        )

    async def save_node(self, context):
        await context.store_value("round", str(self.round.value).encode())

    def create_notification(self, context):
        return (context.author().value, self.round.value)

    def create_request(self, context):
        return "request"

    async def handle_request(self, context, request):
        return ("response", self.round.value)

    async def handle_notification(self, context, notification):
        self.notifications.append(notification)
        return "request" if self.answer_notifications else None

    async def handle_response(self, context, response, clock):
        self.responses.append(response)

    def active_round(self):
        return self.round


def factory(author, num_nodes):
    return SimulatedContext(author, num_nodes, 10)


def make(node_class=ToyNode, seed=7, num_nodes=3):
    return Simulator(node_class, seed, num_nodes, RandomDelay(10.0, 4.0), factory)


def test_single_node_periodic_updates():
    class Quiet(ToyNode):
        broadcast = False

    sim = make(Quiet, num_nodes=1)
    startup = sim.simulated_node(Author(0)).startup_time
    sim.loop_until(startup + Duration(350))
    node = sim.simulated_node(Author(0)).node
    assert node.clocks == [NodeTime(0), NodeTime(100), NodeTime(200), NodeTime(300)]


def test_updates_scheduled_in_the_past_move_one_tick_ahead():
    class Eager(ToyNode):
        broadcast = False
        period = -50

    sim = make(Eager, num_nodes=1)
    startup = sim.simulated_node(Author(0)).startup_time
    sim.loop_until(startup + Duration(5))
    node = sim.simulated_node(Author(0)).node
    assert node.clocks == [NodeTime(t) for t in range(6)]


def test_loop_returns_contexts_of_all_nodes():
    sim = make(num_nodes=4)
    contexts = sim.loop_until(GlobalTime(500))
    assert len(contexts) == 4
    assert [c.author() for c in contexts] == [Author(i) for i in range(4)]
    assert all(c is sim.simulated_node(Author(i)).context for i, c in enumerate(contexts))


def test_no_update_after_max_clock_and_clocks_monotonic():
    sim = make(num_nodes=3)
    max_clock = GlobalTime(700)
    sim.loop_until(max_clock)
    for index in range(3):
        simulated = sim.simulated_node(Author(index))
        clocks = simulated.node.clocks
        assert clocks
        assert clocks == sorted(clocks)
        assert all(
            GlobalTime.from_node_time(c, simulated.startup_time) <= max_clock for c in clocks
        )


def test_broadcast_never_reaches_sender():
    sim = make(num_nodes=3)
    sim.loop_until(GlobalTime(600))
    for index in range(3):
        received = sim.simulated_node(Author(index)).node.notifications
        assert received
        assert all(sender != index for sender, _ in received)
        assert {sender for sender, _ in received} == {i for i in range(3) if i != index}


def test_should_send_filters_out_self():
    class Targeted(ToyNode):
        broadcast = False
        send_to = [Author(0), Author(1)]

    sim = make(Targeted, num_nodes=2)
    sim.loop_until(GlobalTime(600))
    node0 = sim.simulated_node(Author(0)).node
    node1 = sim.simulated_node(Author(1)).node
    assert node1.notifications
    assert all(sender == 0 for sender, _ in node1.notifications)
    assert all(sender == 1 for sender, _ in node0.notifications)


def test_query_all_produces_responses():
    class Querying(ToyNode):
        broadcast = False
        query_all = True

    sim = make(Querying, num_nodes=3)
    sim.loop_until(GlobalTime(600))
    for index in range(3):
        responses = sim.simulated_node(Author(index)).node.responses
        assert responses
        assert all(tag == "response" for tag, _ in responses)


def test_notification_requests_lead_to_responses():
    class Answering(ToyNode):
        answer_notifications = True

    sim = make(Answering, num_nodes=2)
    sim.loop_until(GlobalTime(600))
    assert any(sim.simulated_node(Author(i)).node.responses for i in range(2))


def test_nodes_are_saved_to_storage():
    sim = make(num_nodes=2)
    contexts = sim.loop_until(GlobalTime(400))
    for index, context in enumerate(contexts):
        stored = asyncio.run(context.read_value("round"))
        node = sim.simulated_node(Author(index)).node
        assert stored == str(node.round.value).encode()


def test_same_seed_is_deterministic():
    first = make(seed=42)
    second = make(seed=42)
    first.loop_until(GlobalTime(800))
    second.loop_until(GlobalTime(800))
    for index in range(3):
        a = first.simulated_node(Author(index))
        b = second.simulated_node(Author(index))
        assert a.startup_time == b.startup_time
        assert a.node.clocks == b.node.clocks
        assert a.node.notifications == b.node.notifications


def test_startup_times_are_after_time_zero():
    sim = make(num_nodes=5)
    for index in range(5):
        node = sim.simulated_node(Author(index))
        assert node.startup_time >= GlobalTime(1)
        assert node.ignore_scheduled_updates_until == node.startup_time + Duration(-1)


def test_active_round_follows_node():
    sim = make(num_nodes=2)
    sim.loop_until(GlobalTime(300))
    simulated = sim.simulated_node(Author(1))
    assert simulated.active_round() == simulated.node.round
    assert simulated.active_round().value == len(simulated.node.clocks)


def test_unknown_author_raises():
    sim = make(num_nodes=2)
    with pytest.raises(IndexError):
        sim.simulated_node(Author(2))
    with pytest.raises(IndexError):
        sim.simulated_node(Author(-1))


def test_csv_output(tmp_path):
    out = tmp_path / "results"
    sim = make(num_nodes=2)
    sim.loop_until(GlobalTime(500), str(out))
    lines = (out / "round_switches.txt").read_text().splitlines()
    assert lines[0] == "node 0,node 1"
    assert len(lines) > 1
    count = int((out / "number_of_messages.txt").read_text().strip())
    assert count > 0


def test_loading_a_blocking_node_fails():
    class Blocking(ToyNode):
        @classmethod
        async def load_node(cls, context, clock):
            await asyncio.sleep(0.01)
            return cls(context.author())

    with pytest.raises(RuntimeError):
        make(Blocking, num_nodes=1)