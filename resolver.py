from typing import TYPE_CHECKING, Iterable

from connection import (
    Connection,
    ConnectionType,
    Feasible,
    FocusPossibility,
    Infeasible,
    Outcome,
)
from identity_set import IdentitySet
from utils import Identity, Level

if TYPE_CHECKING:
    from engine import Engine


def _connection(
    engine: "Engine",
    type: ConnectionType,
    reacting: int,
    order: int,
    identity: Identity,
    **kwargs,
) -> Connection:
    ids = IdentitySet.create(engine.state.variant.num_suits, identity)
    return Connection(type, reacting, order, ids, **kwargs)


def find_known_connecting(
    engine: "Engine", identity: Identity, skip: set[int]
) -> Connection | None:
    """A card everyone already knows to be `identity`."""
    state, common = engine.state, engine.common
    for i, hand in enumerate(state.hands):
        for order in hand:
            if order in skip:
                continue
            card = common.thoughts[order]
            if card.identity(infer=True, symmetric=True) != identity:
                continue
            visible = state.visible(order)
            if visible is not None and visible != identity:
                continue
            return _connection(engine, ConnectionType.KNOWN, i, order, identity)
    return None


def find_connecting(
    engine: "Engine",
    giver: int,
    identity: Identity,
    connected: set[int],
    ignore_orders: set[int],
    ignore_player: int | None = None,
    only_player: int | None = None,
) -> list[Connection]:
    """
    Look through the other hands, in turn order from the giver, for the card(s)
    that would be played to reach `identity`. Our own hand is never searched here.

    `connected` holds cards earlier steps of the chain already use. A card in
    `ignore_orders` was shown by a rewind not to be this step, so a prompt or
    finesse landing on it means that seat has none.
    """
    state, common = engine.state, engine.common
    us = state.our_player_index

    if only_player is None:
        known = find_known_connecting(engine, identity, connected | ignore_orders)
        if known is not None:
            return [known]

        # cards already expected to play, whose identity we can see
        for i, hand in enumerate(state.hands):
            if i == giver:
                continue
            for order in hand:
                if order in connected or order in ignore_orders:
                    continue
                if order not in common.unknown_plays:
                    continue
                if state.visible(order) == identity:
                    return [_connection(engine, ConnectionType.PLAYABLE, i, order, identity)]

        seats = [i for i in state.in_between(giver, giver) if i not in (us, ignore_player)]
    else:
        seats = [only_player]

    for i in seats:
        prompt = common.find_prompt(state, i, identity, connected, ignore_orders)
        if prompt is not None:
            if state.visible(prompt) == identity:
                return [_connection(engine, ConnectionType.PROMPT, i, prompt, identity)]
            # a wrong prompt: they would play that card, not a finesse
            continue

        finesse = common.find_finesse(state, i, connected, ignore_orders)
        if finesse is None:
            continue
        if state.visible(finesse) == identity:
            return [_connection(engine, ConnectionType.FINESSE, i, finesse, identity)]
        if engine.level >= Level.INTERMEDIATE_FINESSES:
            layered = _layered_finesse(engine, i, finesse, identity, connected, ignore_orders)
            if layered:
                return layered
    return []


def _layered_finesse(
    engine: "Engine",
    player_index: int,
    first: int,
    identity: Identity,
    connected: set[int],
    ignore_orders: set[int],
) -> list[Connection]:
    """
    A finesse whose target sits behind other playable cards: the player blind
    plays each of them thinking it is `identity` until they reach the real one.
    """
    state, common = engine.state, engine.common
    connections = []
    skipped = set(connected)
    order: int | None = first

    while order is not None:
        visible = state.visible(order)
        if visible is None:
            return []
        if visible == identity:
            connections.append(
                _connection(engine, ConnectionType.FINESSE, player_index, order, identity)
            )
            return connections
        if not state.is_playable(visible):
            return []
        connections.append(
            _connection(
                engine, ConnectionType.FINESSE, player_index, order, identity, hidden=True
            )
        )
        skipped.add(order)
        order = common.find_finesse(state, player_index, skipped, ignore_orders)
    return []


def _own_connection(
    engine: "Engine",
    identity: Identity,
    connections: list[Connection],
    connected: set[int],
    ignore_orders: set[int],
) -> list[Connection] | Infeasible:
    """A prompt or finesse on our own hand. Returns [] when there is nothing to try."""
    state, common, me = engine.state, engine.common, engine.me
    us = state.our_player_index
    self_finessed = any(c.self and c.type == ConnectionType.FINESSE for c in connections)

    prompt = common.find_prompt(state, us, identity, connected, ignore_orders)
    if prompt is not None:
        if self_finessed and engine.level < Level.INTERMEDIATE_FINESSES:
            return Infeasible(f"cannot self-prompt {identity} after a self-finesse")
        return [_connection(engine, ConnectionType.PROMPT, us, prompt, identity, self=True)]

    skipped = set(connected)
    found: list[Connection] = []
    finesse = common.find_finesse(state, us, skipped, ignore_orders)

    while finesse is not None:
        card = me.thoughts[finesse]

        # a corrected card we know is something else playable hides the real one
        if card.rewinded and card.actual is not None and card.actual != identity:
            if not state.is_playable(card.actual) or engine.level < Level.INTERMEDIATE_FINESSES:
                return Infeasible(f"our finesse position is {card.actual}, not {identity}")
            found.append(
                _connection(
                    engine, ConnectionType.FINESSE, us, finesse, identity, hidden=True, self=True
                )
            )
            skipped.add(finesse)
            finesse = common.find_finesse(state, us, skipped, ignore_orders)
            continue

        if identity not in card.possible:
            return []
        if self_finessed and engine.level < Level.INTERMEDIATE_FINESSES:
            return Infeasible(f"cannot self-finesse {identity} twice")
        found.append(
            _connection(engine, ConnectionType.FINESSE, us, finesse, identity, self=True)
        )
        return found

    return []


def connect(
    engine: "Engine",
    giver: int,
    target: int,
    identity: Identity,
    looks_direct: bool,
    connections: list[Connection],
    ignore_orders: set[int],
    ignore_player: int | None = None,
    self_ranks: Iterable[int] = (),
) -> list[Connection] | Infeasible:
    """
    Find the card(s) that bring the stack up to `identity`: other hands first,
    then our own, then the ignored player's hand.
    """
    us = engine.state.our_player_index
    self_first = identity.rank in set(self_ranks)
    connected = {c.order for c in connections}

    if not self_first:
        found = find_connecting(engine, giver, identity, connected, ignore_orders, ignore_player)
        if found:
            return found

    if giver != us and not (target == us and looks_direct):
        own = _own_connection(engine, identity, connections, connected, ignore_orders)
        if isinstance(own, Infeasible) or own:
            return own

    if self_first:
        found = find_connecting(engine, giver, identity, connected, ignore_orders, ignore_player)
        if found:
            return found

    if ignore_player is not None and ignore_player != giver:
        found = find_connecting(
            engine, giver, identity, connected, ignore_orders, only_player=ignore_player
        )
        if found:
            return found

    return Infeasible(f"no connecting card for {identity}")


def find_own_finesses(
    engine: "Engine",
    giver: int,
    target: int,
    identity: Identity,
    looks_direct: bool,
    ignore_player: int | None = None,
) -> Outcome:
    """
    Build the chain of plays from the current stack up to (but not including)
    `identity`, or explain why none is legal.
    """
    state, me = engine.state, engine.me
    us = state.our_player_index
    suit = identity.suit

    # ranks whose card we have been told is in our own hand
    self_ranks = {
        card.actual.rank
        for order in state.hands[us]
        if (card := me.thoughts[order]).rewinded
        and card.actual is not None
        and card.actual.suit == suit
    }

    connections: list[Connection] = []

    for next_rank in range(state.play_stacks[suit] + 1, identity.rank):
        next_identity = Identity(suit, next_rank)
        ignore_orders = engine.ignore_orders(len(connections), suit)

        result = connect(
            engine,
            giver,
            target,
            next_identity,
            looks_direct,
            connections,
            ignore_orders,
            ignore_player,
            self_ranks,
        )
        if isinstance(result, Infeasible):
            return result

        connections.extend(result)

    return Feasible(connections)


def select_committed(
    possibilities: list[FocusPossibility], holder: int
) -> FocusPossibility | None:
    """
    The interpretation to act on: fewest blind plays from `holder`, then no
    self-component.
    """
    if not possibilities:
        return None

    def key(p: FocusPossibility):
        blind = len(
            [
                c
                for c in p.connections
                if c.type == ConnectionType.FINESSE and c.reacting == holder
            ]
        )
        return (blind, p.has_self)

    return min(possibilities, key=key)


def assign_connections(
    engine: "Engine", possibilities: list[FocusPossibility], action_index: int
) -> None:
    """
    Write the assumptions behind the given chains onto common knowledge. A card
    used by more than one chain holds the union of their identities.
    """
    state, common = engine.state, engine.common
    assigned: set[int] = set()

    for possibility in possibilities:
        for conn in possibility.connections:
            if conn.type not in (ConnectionType.FINESSE, ConnectionType.PROMPT):
                continue

            card = common.thoughts[conn.order]
            ids = conn.identities

            if conn.order in assigned:
                card.inferred = card.inferred.union(ids).intersect(card.possible)
                card.superposition = True
            else:
                if card.old_inferred is None:
                    card.old_inferred = card.inferred
                narrowed = card.inferred.intersect(ids)
                if not narrowed:
                    narrowed = card.possible.intersect(ids)
                if narrowed != card.inferred:
                    card.reasoning.append(action_index)
                    card.reasoning_turn.append(state.turn_count)
                card.inferred = narrowed

            if conn.type == ConnectionType.FINESSE:
                if not card.finessed:
                    card.finesse_index = action_index
                card.finessed = True
                card.hidden = conn.hidden
            assigned.add(conn.order)
