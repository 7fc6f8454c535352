import copy

import pytest

from identity_set import IdentitySet
from utils import Identity, parse_card


def test_create_all_and_empty():
    assert len(IdentitySet.create(5)) == 25
    assert len(IdentitySet.create(6)) == 30
    assert not IdentitySet.create(5, [])


def test_iterates_suit_then_rank():
    s = IdentitySet.create(5, [parse_card("g1"), parse_card("r3"), parse_card("r1")])
    assert list(s) == [Identity(0, 1), Identity(0, 3), Identity(2, 1)]


def test_operations_return_new_sets():
    reds = IdentitySet.create(5, [Identity(0, r) for r in range(1, 6)])
    ones = IdentitySet.create(5, [Identity(s, 1) for s in range(5)])

    both = reds.intersect(ones)
    assert list(both) == [Identity(0, 1)]
    assert len(reds) == 5 and len(ones) == 5

    assert len(reds.subtract(ones)) == 4
    assert len(reds.union(ones)) == 9
    assert reds & ones == both
    assert reds - both == reds.subtract(Identity(0, 1))
    assert (reds | ones) == reds.union(ones)


def test_operands_can_be_identities_or_iterables():
    reds = IdentitySet.create(5, [Identity(0, r) for r in range(1, 6)])
    r1 = parse_card("r1")
    assert reds.subtract(r1) == reds.subtract([r1]) == reds.subtract(IdentitySet.create(5, r1))


def test_membership():
    s = IdentitySet.create(5, [parse_card("b4")])
    assert parse_card("b4") in s
    assert (3, 4) in s
    assert parse_card("b3") not in s
    assert "b4" not in s


def test_equality_and_hash():
    a = IdentitySet.create(5, [parse_card("r1"), parse_card("y2")])
    b = IdentitySet.create(5, [parse_card("y2"), parse_card("r1")])
    assert a == b
    assert len({a, b}) == 1
    assert a != IdentitySet.create(6, [parse_card("r1"), parse_card("y2")])


def test_immutable_and_shared_by_copies():
    s = IdentitySet.create(5)
    with pytest.raises(AttributeError):
        s.value = 0
    assert copy.deepcopy(s) is s
    assert copy.copy(s) is s


def test_filter_and_subset():
    s = IdentitySet.create(5)
    fives = s.filter(lambda i: i.rank == 5)
    assert len(fives) == 5
    assert fives.issubset(s)
    assert not s.issubset(fives)
