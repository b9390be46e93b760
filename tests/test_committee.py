from bftlab.base_types import Duration
from bftlab.committee import Authority, Committee, Parameters
from bftlab.crypto import PublicKey


def _key(i):
    return PublicKey(bytes([i]) * 32)


def _committee(stakes):
    info = [(_key(i), stake, ("127.0.0.1", 9000 + i)) for i, stake in enumerate(stakes)]
    return Committee.from_info(info, 1)


def test_parameter_defaults():
    params = Parameters()
    assert params.target_commit_interval == Duration(500)
    assert params.delta == Duration(5_000)
    assert params.gamma == 500.0
    assert params.lambda_ == 100.0


def test_from_info_builds_authorities():
    committee = _committee([1, 2, 3])
    assert committee.size() == 3
    assert committee.epoch == 1
    assert committee.authorities[_key(1)] == Authority(_key(1), 2, ("127.0.0.1", 9001))


def test_stake_of_member_and_stranger():
    committee = _committee([1, 2, 3])
    assert committee.stake(_key(2)) == 3
    assert committee.stake(_key(42)) == 0


def test_quorum_threshold_equal_stakes():
    assert _committee([1, 1, 1, 1]).quorum_threshold() == 3
    assert _committee([1]).quorum_threshold() == 1


def test_address_lookup():
    committee = _committee([1, 1])
    assert committee.address(_key(0)) == ("127.0.0.1", 9000)
    assert committee.address(_key(9)) is None


def test_broadcast_addresses_excludes_self():
    committee = _committee([1, 1, 1])
    addresses = committee.broadcast_addresses(_key(1))
    assert sorted(name.value for name, _ in addresses) == [_key(0).value, _key(2).value]
    assert all(committee.address(name) == address for name, address in addresses)