import pytest

from card import ClueRecord
from errors import InternalConsistencyError
from players import COMMON, Player, Viewer
from state import State
from tests.helpers import ids, setup
from utils import Clue, ClueType, parse_card
from variant import get_variant

RED = Clue(ClueType.COLOUR, 0)
ONE = Clue(ClueType.RANK, 1)


def make_state(hands: list[list[int]]) -> State:
    state = State(["Alice", "Bob", "Cathy"][: len(hands)], 0, get_variant())
    state.hands = hands
    return state


def clued_card(player: Player, order: int, inferred, clue: Clue, giver: int, turn: int, actual=None):
    card = player.add_card(order, actual, 0)
    card.possible = ids(*[f"r{r}" for r in range(1, 6)]) if clue == RED else card.possible
    card.inferred = inferred
    card.clued = True
    card.clues.append(ClueRecord(clue, giver, turn))
    return card


def test_visible_last_copy_is_eliminated_from_our_hand():
    engine = setup([["xx"] * 5, ["r5", "g1", "b1", "y1", "p1"]], convention="conventionless")
    our_card = engine.me.thoughts[engine.state.hands[0][0]]

    assert parse_card("r5") not in our_card.possible
    assert parse_card("r5") not in engine.me.all_possible
    # nobody else can see it yet
    assert parse_card("r5") in engine.common.thoughts[engine.state.hands[0][0]].possible
    bob_r5 = engine.state.hands[1][0]
    assert parse_card("r5") in engine.players[1].thoughts[bob_r5].possible


def test_too_many_copies_is_fatal():
    state = make_state([[], [0]])
    player = Player(Viewer(0), 5)
    player.add_card(0, parse_card("r5"), 0)
    state.play_stacks[0] = 5

    with pytest.raises(InternalConsistencyError):
        player.card_elim(state)


def test_good_touch_removes_claimed_identity():
    state = make_state([[], [0, 1]])
    common = Player(COMMON, 5)
    one = clued_card(common, 0, ids("r1"), ONE, 0, 1)
    one.possible = ids("r1")
    red = clued_card(common, 1, ids("r1", "r2", "r3", "r4", "r5"), RED, 0, 1)

    resets = common.good_touch_elim(state)

    assert resets == set()
    assert red.inferred == ids("r2", "r3", "r4", "r5")
    assert common.elims[parse_card("r1")] == [1]


def test_restore_undoes_good_touch():
    state = make_state([[], [0, 1]])
    common = Player(COMMON, 5)
    one = clued_card(common, 0, ids("r1"), ONE, 0, 1)
    one.possible = ids("r1")
    red = clued_card(common, 1, ids("r1", "r2", "r3", "r4", "r5"), RED, 0, 1)
    common.good_touch_elim(state)

    assert common.restore_elim(state, parse_card("r1")) == [1]
    assert parse_card("r1") in red.inferred
    assert parse_card("r1") not in common.elims


def test_good_touch_skips_match_clued_later_by_holder():
    # Bob's red card was clued first; Bob then clued Alice's r1 himself
    state = make_state([[0], [1]])
    common = Player(COMMON, 5)
    one = clued_card(common, 0, ids("r1"), ONE, 1, 2)
    one.possible = ids("r1")
    red = clued_card(common, 1, ids("r1", "r2", "r3", "r4", "r5"), RED, 0, 1)

    common.good_touch_elim(state)

    assert parse_card("r1") in red.inferred


def test_good_touch_skips_unresolved_match_in_giver_hand():
    # Bob sees Alice's card is r1 but Alice does not know it yet
    state = make_state([[0], [1]])
    bob = Player(Viewer(1), 5)
    clued_card(bob, 0, ids("r1", "r2"), RED, 1, 1, actual=parse_card("r1"))
    red = clued_card(bob, 1, ids("r1", "r2", "r3", "r4", "r5"), RED, 0, 2)

    bob.good_touch_elim(state)

    assert parse_card("r1") in red.inferred


def test_good_touch_uses_resolved_match_in_giver_hand():
    state = make_state([[0], [1]])
    bob = Player(Viewer(1), 5)
    clued_card(bob, 0, ids("r1"), RED, 1, 1, actual=parse_card("r1"))
    red = clued_card(bob, 1, ids("r1", "r2", "r3", "r4", "r5"), RED, 0, 2)

    bob.good_touch_elim(state)

    assert parse_card("r1") not in red.inferred


def test_reset_finessed_card_uses_snapshot():
    player = Player(COMMON, 5)
    card = player.add_card(0, None, 0)
    card.old_inferred = ids("r1", "r2")
    card.inferred = ids()
    card.finessed = True

    player.reset_card(0)

    assert card.reset
    assert not card.finessed
    assert card.inferred == ids("r1", "r2")


def test_reset_unfinessed_card_widens_to_possible():
    player = Player(COMMON, 5)
    card = player.add_card(0, None, 0)
    card.possible = ids("g1", "g2", "g3")
    card.inferred = ids()

    player.reset_card(0)

    assert card.inferred == card.possible


def test_linked_cards_are_not_playable():
    state = make_state([[0, 1], []])
    alice = Player(Viewer(0), 5)
    for order in (0, 1):
        card = alice.add_card(order, None, 0)
        card.possible = ids("r1", "r2")
        card.inferred = ids("r1")
        card.clued = True

    assert alice.is_playable(state, 0)

    alice.refresh_links(state)

    assert len(alice.links) == 1
    assert alice.links[0].orders == [0, 1]
    assert not alice.is_playable(state, 0)
    assert not alice.thinks_playables(state, 0)


def test_cards_in_different_hands_rule_each_other_out():
    # Bob and Cathy each hold one of r5/b5 and can see the other's
    state = make_state([[], [0], [1]])
    state.set_identity(0, parse_card("r5"))
    state.set_identity(1, parse_card("b5"))
    common = Player(COMMON, 5)
    bob = common.add_card(0, None, 0)
    cathy = common.add_card(1, None, 0)
    bob.possible = ids("r5", "b5")
    cathy.possible = ids("r5", "b5")

    common.card_elim(state)

    assert bob.possible == ids("r5")
    assert cathy.possible == ids("b5")
    assert parse_card("r5") not in common.all_possible
    assert parse_card("b5") not in common.all_possible


def test_shared_possibilities_in_one_hand_stay():
    state = make_state([[], [0, 1], []])
    state.set_identity(0, parse_card("r5"))
    state.set_identity(1, parse_card("b5"))
    common = Player(COMMON, 5)
    first = common.add_card(0, None, 0)
    second = common.add_card(1, None, 0)
    first.possible = ids("r5", "b5")
    second.possible = ids("r5", "b5")

    common.card_elim(state)

    assert first.possible == ids("r5", "b5")
    assert second.possible == ids("r5", "b5")


def test_touched_cards_sharing_inferences_cross_eliminate():
    state = make_state([[], [0], [1]])
    state.set_identity(0, parse_card("r4"))
    state.set_identity(1, parse_card("b4"))
    common = Player(COMMON, 5)
    four = Clue(ClueType.RANK, 4)
    bob = clued_card(common, 0, ids("r4", "b4"), four, 0, 1)
    cathy = clued_card(common, 1, ids("r4", "b4"), four, 0, 1)

    resets = common.good_touch_elim(state)

    assert resets == set()
    assert bob.inferred == ids("r4")
    assert cathy.inferred == ids("b4")


def test_visible_duplicate_is_not_a_hard_match():
    # Alice's two focused cards both claim r3 while Bob visibly holds one
    state = make_state([[0, 1], [2], []])
    state.set_identity(2, parse_card("r3"))
    common = Player(COMMON, 5)
    three = Clue(ClueType.RANK, 3)
    for order in (0, 1):
        card = clued_card(common, order, ids("r3"), three, 2, 1)
        card.focused = True
    bob = clued_card(common, 2, ids("r3"), RED, 2, 1)

    resets = common.good_touch_elim(state)

    assert resets == set()
    assert bob.inferred == ids("r3")
    assert not bob.reset
