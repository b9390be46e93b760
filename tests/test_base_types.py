from bftlab.base_types import Duration, EpochId, NodeTime, Round


def test_round_plus_usize():
    assert Round(3) + 4 == Round(7)


def test_round_max_update_raises_only():
    r = Round(5)
    r.max_update(Round(2))
    assert r == Round(5)
    r.max_update(Round(9))
    assert r == Round(9)


def test_round_ordering():
    assert Round(1) < Round(2)
    assert max(Round(4), Round(3)) == Round(4)


def test_node_time_default_is_never():
    assert NodeTime() == NodeTime.never()
    assert NodeTime.never().value == 2**63 - 1


def test_node_time_plus_duration():
    assert NodeTime(5) + Duration(3) == NodeTime(8)
    assert NodeTime(5) + Duration(-1) == NodeTime(4)


def test_node_time_repr():
    assert repr(NodeTime(12)) == "@12"


def test_duration_default():
    assert Duration() == Duration(0)


def test_epoch_previous():
    assert EpochId(0).previous() is None
    assert EpochId(3).previous() == EpochId(3)


def test_epoch_ordering():
    assert sorted([EpochId(2), EpochId(0), EpochId(1)]) == [EpochId(0), EpochId(1), EpochId(2)]