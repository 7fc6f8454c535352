import math

from conventions import make_convention
from engine import Engine
from identity_set import IdentitySet
from metrics.post_move import BeliefEntropyMetric
from utils import Action, NullStream, parse_card
from variant import get_variant


def make_engine() -> Engine:
    engine = Engine(
        ["Alice", "Bob"], 0, get_variant(), make_convention("conventionless"), log=NullStream()
    )
    for order, card in enumerate(["r1", "g2"]):
        engine.handle_action(
            Action(Action.ActionType.DRAW, player=1, order=order, identity=parse_card(card))
        )
    return engine


def test_known_card_has_no_entropy():
    engine = make_engine()
    engine.common.thoughts[0].possible = IdentitySet.create(5, [parse_card("r1")])
    engine.common.thoughts[0].inferred = engine.common.thoughts[0].possible

    assert BeliefEntropyMetric.card_entropy(engine, 0) == 0.0


def test_entropy_weighted_by_remaining_copies():
    engine = make_engine()
    # r1 has three copies and r5 only one
    ids = IdentitySet.create(5, [parse_card("r1"), parse_card("r5")])
    engine.common.thoughts[1].possible = ids
    engine.common.thoughts[1].inferred = ids

    expected = -(0.75 * math.log2(0.75) + 0.25 * math.log2(0.25))
    assert math.isclose(BeliefEntropyMetric.card_entropy(engine, 1), expected)


def test_final_value_is_mean_over_moves():
    engine = make_engine()
    metric = BeliefEntropyMetric()

    first = metric(Action(Action.ActionType.DISCARD), engine=engine)
    ids = IdentitySet.create(5, [parse_card("g2")])
    engine.common.thoughts[1].possible = ids
    engine.common.thoughts[1].inferred = ids
    second = metric(Action(Action.ActionType.DISCARD), engine=engine)

    assert second < first
    assert math.isclose(metric.final_value, (first + second) / 2)


if __name__ == "__main__":
    test_known_card_has_no_entropy()
    test_entropy_weighted_by_remaining_copies()
    test_final_value_is_mean_over_moves()
