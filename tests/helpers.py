from conventions import make_convention
from engine import Engine
from game import NAMES
from identity_set import IdentitySet
from utils import Action, Clue, ClueType, Color, Level, NullStream, parse_card
from variant import get_variant


def setup(
    hands: list[list[str]],
    convention: str = "h-group",
    level: Level | None = None,
    our_player_index: int = 0,
    log=None,
) -> Engine:
    """
    Deal the given hands, slot 1 first, to a fresh engine. Use "xx" for cards
    the engine cannot see.
    """
    engine = Engine(
        NAMES[: len(hands)],
        our_player_index,
        get_variant(),
        make_convention(convention, level),
        log=log if log is not None else NullStream(),
    )
    order = 0
    for player, hand in enumerate(hands):
        # the last card drawn ends up in slot 1
        for card in reversed(hand):
            identity = None if card == "xx" else parse_card(card)
            engine.handle_action(
                Action(Action.ActionType.DRAW, player=player, order=order, identity=identity)
            )
            order += 1
    return engine


def ids(*cards: str) -> IdentitySet:
    return IdentitySet.create(5, [parse_card(c) for c in cards])


def order_at(engine: Engine, player: int, slot: int) -> int:
    return engine.state.hands[player][slot - 1]


def parse_clue(text: str) -> Clue:
    if text.isdigit():
        return Clue(ClueType.RANK, int(text))
    return Clue(ClueType.COLOUR, Color[text.upper()].value)


def clue(engine: Engine, giver: int, target: int, value: str, slots: list[int] | None = None):
    """
    Give a clue. The touched cards are worked out from what the engine can see
    unless `slots` names them (needed when the engine's own hand is clued).
    """
    c = parse_clue(value)
    state = engine.state
    if slots is None:
        touched = [
            o
            for o in state.hands[target]
            if state.visible(o) is not None and state.variant.touched(state.visible(o), c)
        ]
    else:
        touched = [order_at(engine, target, s) for s in slots]
    action = Action(Action.ActionType.CLUE, giver=giver, target=target, clue=c, touched=touched)
    engine.handle_action(action)
    return action


def play(engine: Engine, player: int, slot: int, card: str) -> Action:
    action = Action(
        Action.ActionType.PLAY,
        player=player,
        order=order_at(engine, player, slot),
        identity=parse_card(card),
    )
    engine.handle_action(action)
    return action


def discard(engine: Engine, player: int, slot: int, card: str, failed: bool = False) -> Action:
    action = Action(
        Action.ActionType.DISCARD,
        player=player,
        order=order_at(engine, player, slot),
        identity=parse_card(card),
        failed=failed,
    )
    engine.handle_action(action)
    return action


def draw(engine: Engine, player: int, card: str = "xx") -> int:
    order = len(engine.state.deck)
    identity = None if card == "xx" else parse_card(card)
    engine.handle_action(
        Action(Action.ActionType.DRAW, player=player, order=order, identity=identity)
    )
    return order


def end_turn(engine: Engine) -> None:
    state = engine.state
    engine.handle_action(
        Action(
            Action.ActionType.TURN,
            player=state.next_player_index(state.current_player_index),
            turn=state.turn_count + 1,
        )
    )
