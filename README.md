# bftlab

Building blocks for experimenting with Byzantine fault tolerant (BFT)
consensus protocols in Python. It also has a deterministic discrete-event
simulator that runs such protocols over a randomized network.

## Installing

```
pip install bftlab
```

To run the tests, install the `test` extra (`pytest`, `pytest-asyncio`).

## Modules

- `bftlab.base_types` holds the value types:
  - `Round`, which supports `Round + int` and `max_update`;
  - `Duration`, in milliseconds;
  - `NodeTime`, which supports `NodeTime + Duration`. It defaults to
    `NodeTime.never()`, the largest signed 64-bit value;
  - `EpochId`, which has `previous()`.
- `bftlab.rng` has `Xoshiro256StarStar`, a generator seeded through
  SplitMix64. Its methods are `next_u64`, `gen_range(low, high)`, `random`,
  `normal` and an in-place `shuffle`.
- `bftlab.configuration` has `EpochConfiguration`. It is built from an
  ordered list of `(author, votes)` pairs and offers these methods:
  - `weight` and `count_votes`;
  - `quorum_threshold`, which is `2N // 3 + 1`;
  - `validity_threshold`, which is `(N + 2) // 3`;
  - `pick_author(seed)`, a deterministic leader choice weighted by votes.
- `bftlab.smr_context` states what a state-machine replication context must
  provide, as the abstract class `SmrContext`. It also has:
  - the abstract classes `CommitCertificate`, `Signable` and `Authored`;
  - `BcsSignable`, which hashes the type name followed by the canonical bytes
    that `bcs_serialize` produces;
  - `SignedValue`, with `make(context, value)` and `verify(context)`.
- `bftlab.interfaces` has the abstract classes `ConsensusNode`
  (`load_node`, `update_node`, `save_node`) and `DataSyncNode`
  (`create_notification`, `create_request`, `handle_request`,
  `handle_notification`, `handle_response`). It also has the
  `NodeUpdateActions` dataclass.
- `bftlab.simulated_context` has `SimulatedContext`, an in-memory context
  with these parts:
  - commands that count upward;
  - ledger states keyed by a 64-bit hash;
  - epochs of `max_command_per_epoch` commands each;
  - equal voting rights for all nodes;
  - signatures that are plain `(author, hash)` pairs;
  - a dictionary used as storage.

  It also defines `Author`, `State`, `Command`, `Signature`,
  `SimulatedHasher` and `SimulatedLedgerState`.
- `bftlab.crypto` covers Ed25519 keys and signatures:
  - `Digest`, a 32-byte value;
  - `PublicKey` and `SecretKey`, both with base64 conversion;
  - `generate_keypair(rng)` and `generate_production_keypair()`;
  - `Signature`, with `sign`, `verify` and `verify_batch`, all of which
    raise `CryptoError` on failure;
  - `SignatureService`, whose `request_signature` is a coroutine.
- `bftlab.committee` has `Committee`, built with
  `Committee.from_info([(public_key, stake, (host, port)), ...], epoch)`.
  Its methods are `size`, `stake`, `quorum_threshold`, `address` and
  `broadcast_addresses`. The module also has `Authority` and `Parameters`.
  `Parameters` holds the default timing values: a target commit interval of
  500 ms, a delta of 5000 ms, a gamma of 500.0 and a `lambda_` of 100.0.
- `bftlab.timer` has `Timer(duration_ms)`. A timer can be awaited directly
  or through `wait()`. `reset(duration_ms)` moves its deadline, and this
  works while something is already waiting on it.
- `bftlab.events` has the simulation types:
  - `GlobalTime`;
  - `RandomDelay(mean, variance)`, a log-normal delay;
  - the `ActiveRound` interface;
  - the four simulator events (`DataSyncNotifyEvent`,
    `DataSyncRequestEvent`, `DataSyncResponseEvent`, `UpdateTimerEvent`)
    and `event_kind`.
- `bftlab.simulator` has `Simulator` and `SimulatedNode`.
- `bftlab.data_writer` has `DataWriter`, which records round switches and
  message counts during a simulation.

## Example

```python
from bftlab.configuration import EpochConfiguration

config = EpochConfiguration([("a", 1), ("b", 2), ("c", 3)])
config.count_votes(["b", "c"])   # 5
config.quorum_threshold()        # 5
leader = config.pick_author(42)
```

## Running a simulation

`Simulator` takes five arguments:

1. a node class that implements `ConsensusNode` and `DataSyncNode`. The
   node's async methods are driven to completion synchronously, so they must
   not wait on outside events;
2. a random seed;
3. the number of nodes;
4. a `RandomDelay` for the network;
5. a factory `(author, num_nodes) -> context`, for example
   `lambda author, n: SimulatedContext(author, n, 10)`.

`loop_until(GlobalTime(t))` processes every event due up to `t` and returns
the contexts of all nodes. Runs with the same seed are reproducible.

If you pass a directory as `csv_path`, the simulator writes two files into
it: `round_switches.txt`, which has one column per node and the time each
round began, and `number_of_messages.txt`. The directory is created if it
does not exist. The node class must then also implement `active_round()`.

## What this package does not do

- It ships no consensus protocol. You supply the node class that implements
  the interfaces.
- It has no networking layer and no driver that runs nodes over real
  sockets. `Committee` only describes authorities and their addresses.
- It has no persistent storage. `SimulatedContext` keeps its data in memory.
- It has no command-line program.