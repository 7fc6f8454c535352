from players import COMMON, Player, Viewer
from tests.helpers import clue, ids, order_at, setup
from tests.test_elim import make_state


def touched_card(player, order, inferred, possible=None):
    card = player.add_card(order, None, 0)
    card.possible = possible if possible is not None else inferred
    card.inferred = inferred
    card.clued = True
    return card


def test_clued_playable_is_loaded():
    engine = setup([["xx"] * 5, ["g2", "b3", "y3", "p3", "g4"]])
    ours = order_at(engine, 0, 1)
    clue(engine, 1, 0, "red", slots=[1])
    state = engine.state

    assert engine.me.thinks_playables(state, 0) == [ours]
    assert engine.me.thinks_loaded(state, 0)
    assert not engine.me.thinks_locked(state, 0)
    assert engine.common.hypo_stacks[0] == 1


def test_touched_trash():
    engine = setup([["xx"] * 5, ["r1", "b3", "y3", "p3", "g4"]], convention="conventionless")
    bob_r1 = order_at(engine, 1, 1)
    clue(engine, 0, 1, "1")
    assert engine.common.thinks_trash(engine.state, 1) == []

    engine.state.play_stacks = [1, 1, 1, 1, 1]
    engine.update_beliefs()

    assert engine.common.thinks_trash(engine.state, 1) == [bob_r1]
    assert engine.common.thinks_loaded(engine.state, 1)


def test_locked_hand():
    state = make_state([[0, 1], []])
    alice = Player(Viewer(0), 5)
    for order in (0, 1):
        touched_card(alice, order, ids("r3", "r4"))

    state.clue_tokens = 0
    assert alice.thinks_locked(state, 0)
    state.clue_tokens = 1
    assert not alice.thinks_locked(state, 0)


def test_hypo_stacks_follow_known_plays():
    state = make_state([[], [0, 1, 2]])
    common = Player(COMMON, 5)
    touched_card(common, 0, ids("r1"))
    touched_card(common, 1, ids("r2"), possible=ids("r2", "r3"))
    touched_card(common, 2, ids("g1", "b1"))

    common.update_hypo_stacks(state)

    assert common.hypo_stacks[0] == 2
    assert common.hypo_stacks[2] == 0
    assert common.unknown_plays == {2}
