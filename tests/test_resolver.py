from connection import Connection, ConnectionType, Feasible, FocusPossibility, Infeasible
from resolver import find_own_finesses, select_committed
from tests.helpers import clue, discard, draw, end_turn, ids, order_at, setup
from utils import Action, Level, parse_card


def waiting_for(engine, inference: str):
    return [w for w in engine.common.waiting_connections if w.inference == parse_card(inference)]


def test_prompt_on_clued_card():
    engine = setup(
        [["xx"] * 5, ["g4", "r2", "b3", "y3", "r1"], ["r3", "b4", "y4", "p4", "g3"]]
    )
    bob_r2 = order_at(engine, 1, 2)
    bob_r1 = order_at(engine, 1, 5)

    # the chop is r1, so the other red card can not be r1
    clue(engine, 0, 1, "red")
    assert engine.common.thoughts[bob_r1].inferred == ids("r1")
    assert engine.common.thoughts[bob_r2].inferred == ids("r2", "r3", "r4", "r5")
    end_turn(engine)

    clue(engine, 0, 2, "red")

    (wc,) = waiting_for(engine, "r3")
    assert [c.type for c in wc.connections] == [ConnectionType.KNOWN, ConnectionType.PROMPT]
    assert [c.order for c in wc.connections] == [bob_r1, bob_r2]
    assert not wc.symmetric
    card = engine.common.thoughts[bob_r2]
    assert card.inferred == ids("r2")
    assert card.old_inferred == ids("r2", "r3", "r4", "r5")

    # r2 is a shorter reading Cathy can not rule out yet
    (alt,) = waiting_for(engine, "r2")
    assert alt.symmetric


def test_wrong_prompt_is_not_a_finesse():
    engine = setup(
        [["xx"] * 5, ["g4", "r4", "b3", "y3", "r1"], ["r3", "b4", "y4", "p4", "g3"]]
    )
    bob_r4 = order_at(engine, 1, 2)
    clue(engine, 0, 1, "red")
    end_turn(engine)

    clue(engine, 0, 2, "red")

    assert not waiting_for(engine, "r3")
    card = engine.common.thoughts[bob_r4]
    assert card.inferred == ids("r2", "r3", "r4", "r5")
    assert card.old_inferred is None


def layered_setup(level: Level):
    engine = setup(
        [["xx"] * 5, ["g1", "r1", "b4", "y4", "p4"], ["r2", "b3", "y3", "p3", "g4"]],
        level=level,
    )
    clue(engine, 0, 2, "red")
    return engine


def test_layered_finesse():
    engine = layered_setup(Level.INTERMEDIATE_FINESSES)
    bob_g1, bob_r1 = order_at(engine, 1, 1), order_at(engine, 1, 2)

    (wc,) = waiting_for(engine, "r2")
    assert [c.order for c in wc.connections] == [bob_g1, bob_r1]
    assert [c.hidden for c in wc.connections] == [True, False]
    assert all(c.type == ConnectionType.FINESSE for c in wc.connections)

    g1 = engine.common.thoughts[bob_g1]
    assert g1.finessed and g1.hidden
    assert engine.common.thoughts[bob_r1].finessed


def test_layered_finesse_needs_level():
    engine = layered_setup(Level.BASIC)
    assert not engine.common.waiting_connections
    assert not engine.common.thoughts[order_at(engine, 1, 1)].finessed


def test_unreachable_identity_is_infeasible():
    engine = setup([["xx"] * 5, ["g4", "b3", "y3", "p3", "g3"], ["r3", "b4", "y4", "p4", "g2"]])

    outcome = find_own_finesses(engine, 0, 2, parse_card("r3"), False, ignore_player=2)

    assert isinstance(outcome, Infeasible)
    assert "r1" in outcome.reason


def test_playable_identity_needs_no_connections():
    engine = setup([["xx"] * 5, ["g4", "b3", "y3", "p3", "g3"], ["r3", "b4", "y4", "p4", "g2"]])
    outcome = find_own_finesses(engine, 0, 2, parse_card("r1"), False, ignore_player=2)
    assert outcome == Feasible([])


def test_ignored_orders_are_skipped():
    engine = setup([["xx"] * 5, ["r1", "b3", "y3", "p3", "g3"], ["r2", "b4", "y4", "p4", "g2"]])
    bob_r1 = order_at(engine, 1, 1)

    outcome = find_own_finesses(engine, 0, 2, parse_card("r2"), False, ignore_player=2)
    assert isinstance(outcome, Feasible)
    assert [c.order for c in outcome.connections] == [bob_r1]

    engine.handle_action(
        Action(Action.ActionType.IGNORE, order=bob_r1, conn_index=0, inference=parse_card("r2"))
    )
    assert engine.ignore_orders(0, 0) == {bob_r1}
    assert engine.ignore_orders(0, 1) == set()
    assert engine.ignore_orders(1, 0) == set()

    outcome = find_own_finesses(engine, 0, 2, parse_card("r2"), False, ignore_player=2)
    assert isinstance(outcome, Infeasible)


def test_ignored_finesse_position_does_not_move_right():
    engine = setup([["xx"] * 5, ["r1", "r1", "y3", "p3", "g3"], ["r2", "b4", "y4", "p4", "g2"]])
    bob_first, bob_second = order_at(engine, 1, 1), order_at(engine, 1, 2)

    assert engine.common.find_finesse(engine.state, 1, ignore_orders={bob_first}) is None
    assert engine.common.find_finesse(engine.state, 1, connected={bob_first}) == bob_second

    engine.handle_action(
        Action(Action.ActionType.IGNORE, order=bob_first, conn_index=0, inference=parse_card("r2"))
    )
    outcome = find_own_finesses(engine, 0, 2, parse_card("r2"), False, ignore_player=2)
    assert isinstance(outcome, Infeasible)


def test_skipped_finesse_is_not_passed_to_the_next_card():
    engine = setup([["xx"] * 5, ["r1", "r1", "y3", "p3", "g3"], ["r2", "b4", "y4", "p4", "g2"]])
    bob_first, bob_second = order_at(engine, 1, 1), order_at(engine, 1, 2)
    clue(engine, 0, 2, "red")
    end_turn(engine)
    assert waiting_for(engine, "r2")

    discard(engine, 1, 5, "g3")
    draw(engine, 1, "b5")
    end_turn(engine)

    assert engine.rewinds == 1
    assert not any(
        c.order in (bob_first, bob_second)
        for w in engine.common.waiting_connections
        for c in w.connections
    )
    assert not engine.common.thoughts[bob_first].finessed
    assert not engine.common.thoughts[bob_second].finessed


def finesse(reacting: int, order: int, self_: bool = False) -> Connection:
    return Connection(ConnectionType.FINESSE, reacting, order, ids("r1"), self=self_)


def test_committed_prefers_fewest_blind_plays():
    two = FocusPossibility(parse_card("r3"), [finesse(0, 1, True), finesse(0, 2, True)])
    one = FocusPossibility(parse_card("r2"), [finesse(0, 1, True)])
    assert select_committed([two, one], 0) is one


def test_committed_prefers_no_self_component():
    own = FocusPossibility(parse_card("r2"), [finesse(0, 1, True)])
    other = FocusPossibility(parse_card("r3"), [finesse(1, 5), finesse(2, 9)])
    # blind plays by other seats do not count against a reading
    assert select_committed([own, other], 0) is other
    assert select_committed([], 0) is None
