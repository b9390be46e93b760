"""Records round switches and message counts of a simulation into CSV files."""

from __future__ import annotations

import csv
import os
from pathlib import Path
from typing import Any

from bftlab.events import GlobalTime, UpdateTimerEvent
from bftlab.simulated_context import Author


class DataWriter:
    """Collects per-node round switches and the number of network messages."""

    def __init__(self, nodes_num: int, path: str) -> None:
        self.data_files_path = Path(path)
        self.nodes_len = nodes_num
        self.max_round_per_node = [0] * nodes_num
        self.nodes_round_switch: list[list[tuple[int, GlobalTime]]] = [
            [] for _ in range(nodes_num)
        ]
        self.message_counter = 0
        if not self.data_files_path.exists():
            os.mkdir(self.data_files_path)

    def update_round_number(self, simulator: Any, clock: GlobalTime) -> None:
        """Record, for every node, a switch to a higher round at `clock`."""
        for node_num in range(self.nodes_len):
            node = simulator.simulated_node(Author(node_num))
            node_round = node.active_round().value
            if node_round > self.max_round_per_node[node_num]:
                self.max_round_per_node[node_num] = node_round
                self.nodes_round_switch[node_num].append((node_round, clock))

    def add_message_counter(self, event: Any) -> None:
        """Count every event except timer updates."""
        if not isinstance(event, UpdateTimerEvent):
            self.message_counter += 1

    def write_to_file(self) -> None:
        """Write round_switches.txt and number_of_messages.txt."""
        if self.nodes_len == 0:
            raise ValueError("no nodes to report on")
        with open(self.data_files_path / "round_switches.txt", "w", newline="") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow([f"node {index}" for index in range(self.nodes_len)])
            max_round = max(self.max_round_per_node)
            for round_num in range(max_round):
                row = []
                for switches in self.nodes_round_switch:
                    time = next((t for r, t in switches if r == round_num), None)
                    row.append("" if time is None else str(time.value))
                writer.writerow(row)
        with open(self.data_files_path / "number_of_messages.txt", "w", newline="") as handle:
            writer = csv.writer(handle, lineterminator="\n")
            writer.writerow([self.message_counter])