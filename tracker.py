from typing import TYPE_CHECKING

from connection import Connection, ConnectionType, WaitingConnection
from utils import Action, Identity, Level, format_card

if TYPE_CHECKING:
    from engine import Engine


def update_waiting_connections(engine: "Engine") -> bool:
    """
    Check every pending chain against what the player who just moved did.

    Returns True if a rewind replaced the engine's state, in which case the
    caller must stop processing the current action.
    """
    state, common = engine.state, engine.common
    last_player = state.current_player_index
    last_action = engine.last_actions.get(last_player)
    if last_action is None:
        return False

    # focus order -> inferences whose chains were shown to be real this turn
    demonstrated: dict[int, set[Identity]] = {}

    for wc in list(common.waiting_connections):
        if wc not in common.waiting_connections:
            continue
        if not _skip_gone(engine, wc, keep=last_action.order):
            continue

        conn = wc.current

        if (
            last_action.action_type == Action.ActionType.PLAY
            and last_action.player != conn.reacting
            and last_action.identity in conn.identities
            and not conn.hidden
        ):
            if resolve_other_play(engine, wc, last_action):
                demonstrated.setdefault(wc.focus, set()).add(wc.inference)
            continue

        if conn.reacting != last_player:
            continue

        if last_action.order == conn.order:
            if last_action.action_type == Action.ActionType.PLAY and (
                last_action.identity in conn.identities or conn.hidden
            ):
                if resolve_card_played(engine, wc, last_action):
                    demonstrated.setdefault(wc.focus, set()).add(wc.inference)
            elif last_action.action_type == Action.ActionType.PLAY:
                print(
                    f"{format_card(last_action.identity)} played instead of "
                    f"{_format_ids(conn)}, removing {wc}",
                    file=engine.log,
                )
                remove_waiting_connection(engine, wc, unwind=not wc.symmetric)
            else:
                _resolve_card_discarded(engine, wc)
        elif resolve_card_retained(engine, wc, last_action):
            return True

    for focus, inferences in demonstrated.items():
        if state.hand_of(focus) is None:
            continue
        card = common.thoughts[focus]
        narrowed = card.inferred.intersect(inferences)
        if narrowed:
            card.inferred = narrowed
            print(
                f"focus {focus} narrowed to {[format_card(i) for i in narrowed]}",
                file=engine.log,
            )

    return False


def _format_ids(conn: Connection) -> str:
    return ",".join(format_card(i) for i in conn.identities)


def _skip_gone(engine: "Engine", wc: WaitingConnection, keep: int | None = None) -> bool:
    """
    Move past connections whose cards have already left their hands, other than
    `keep`. Returns False if that finished the chain.
    """
    while wc.conn_index < len(wc.connections):
        order = wc.current.order
        if order == keep or engine.state.hand_of(order) is not None:
            return True
        wc.conn_index += 1
    print(f"resolved {wc}", file=engine.log)
    if wc in engine.common.waiting_connections:
        engine.common.waiting_connections.remove(wc)
    return False


def _demonstrates(engine: "Engine", conn: Connection) -> bool:
    """Whether playing this connection proves the chain was meant."""
    return conn.type == ConnectionType.FINESSE or engine.level < Level.INTERMEDIATE_FINESSES


def resolve_card_played(engine: "Engine", wc: WaitingConnection, action: Action) -> bool:
    """
    The awaited card was played. Returns True if that demonstrated the chain.
    """
    common = engine.common
    conn = wc.current
    print(
        f"waiting card {format_card(action.identity)} played by {conn.reacting}",
        file=engine.log,
    )
    demonstrated = _demonstrates(engine, conn)

    if conn.type == ConnectionType.FINESSE:
        # a blind play rules out readings of the focus that did not need it
        rivals = [
            w
            for w in common.waiting_connections
            if w is not wc
            and w.focus == wc.focus
            and all(c.order != conn.order for c in w.connections)
        ]
        for rival in rivals:
            print(f"finesse demonstrated, dropping {rival}", file=engine.log)
            remove_waiting_connection(engine, rival, unwind=not rival.symmetric)

    wc.conn_index += 1
    _skip_gone(engine, wc)
    return demonstrated


def _resolve_card_discarded(engine: "Engine", wc: WaitingConnection) -> None:
    conn = wc.current
    copies = [
        o
        for i in conn.identities
        for o in engine.state.visible_copies(i, exclude=conn.order)
    ]
    if copies:
        # the chain can still go through the copy we see
        print(
            f"{conn.reacting} discarded the expected {_format_ids(conn)}, "
            f"another copy is still visible in {copies}, keeping {wc}",
            file=engine.log,
        )
        return
    print(
        f"{conn.reacting} discarded the expected {_format_ids(conn)}, removing {wc}",
        file=engine.log,
    )
    remove_waiting_connection(engine, wc, unwind=not wc.symmetric)


def _passback(engine: "Engine", wc: WaitingConnection) -> bool:
    """
    Whether the reacting player owes every remaining blind play of the chain,
    more than one, and so may leave them for another seat to start.
    """
    state = engine.state
    reacting = wc.current.reacting
    blind = [
        c
        for c in wc.remaining
        if c.type == ConnectionType.FINESSE and not c.hidden and c.reacting == reacting
    ]
    gap = wc.inference.rank - state.play_stacks[wc.inference.suit] - 1
    return (
        wc.ambiguous
        and not wc.ambiguous_passback
        and reacting != state.our_player_index
        and len(blind) > 1
        and len(blind) == gap
    )


def resolve_card_retained(engine: "Engine", wc: WaitingConnection, action: Action) -> bool:
    """
    The reacting player did something other than play the awaited card.
    Returns True if a rewind replaced the engine's state.
    """
    state, common = engine.state, engine.common
    conn = wc.current
    reacting = conn.reacting
    card = common.thoughts[conn.order]

    if wc.symmetric:
        print(f"{reacting} did not play into symmetric {wc}, removing", file=engine.log)
        remove_waiting_connection(engine, wc, unwind=False)
        return False

    if conn.type not in (ConnectionType.FINESSE, ConnectionType.PROMPT):
        return False

    if not all(state.is_playable(i) for i in conn.identities):
        print(f"{_format_ids(conn)} not yet playable, waiting", file=engine.log)
        return False

    if action.important:
        print(f"{reacting} gave an important clue, waiting", file=engine.log)
        return False

    older = [
        w
        for w in common.waiting_connections
        if w is not wc
        and w.action_index < wc.action_index
        and w.current.reacting == reacting
        and w.current.type == ConnectionType.FINESSE
        and state.hand_of(w.current.order) is not None
    ]
    if older:
        print(f"{reacting} has an older finesse queued, waiting", file=engine.log)
        return False

    if _passback(engine, wc):
        print(f"{reacting} owes several blind plays and may pass back, waiting", file=engine.log)
        wc.ambiguous_passback = True
        return False

    if action.order is not None and action.action_type in (
        Action.ActionType.PLAY,
        Action.ActionType.DISCARD,
    ):
        played = common.thoughts[action.order]
        if (
            action.action_type == Action.ActionType.PLAY
            and played.finessed
            and played.finesse_index < card.finesse_index
        ):
            print(f"{reacting} played into an older finesse, waiting", file=engine.log)
            return False
        if action.failed and played.finessed:
            print(f"{reacting} attempted to play into a finesse, waiting", file=engine.log)
            return False

    print(f"{reacting} did not play into {wc}", file=engine.log)

    if reacting != state.our_player_index:
        ignore = Action(
            Action.ActionType.IGNORE,
            order=conn.order,
            conn_index=wc.conn_index,
            inference=wc.inference,
        )
        if engine.rewind(wc.action_index, ignore):
            return True

    remove_waiting_connection(engine, wc, unwind=True)
    return False


def resolve_other_play(engine: "Engine", wc: WaitingConnection, action: Action) -> bool:
    """
    Someone other than the reacting player played the identity the chain
    needed. Returns True if that demonstrated the chain.
    """
    common = engine.common
    conn = wc.current
    print(
        f"{format_card(action.identity)} played by {action.player} instead of "
        f"{conn.reacting}, moving on",
        file=engine.log,
    )
    demonstrated = _demonstrates(engine, conn)
    if conn.type in (ConnectionType.FINESSE, ConnectionType.PROMPT):
        _unassume(common, conn)

    wc.conn_index += 1
    _skip_gone(engine, wc)
    return demonstrated


def _unassume(common, conn: Connection) -> None:
    card = common.thoughts[conn.order]
    if card.old_inferred is None:
        return
    card.inferred = card.inferred.subtract(conn.identities)
    if not card.inferred:
        card.inferred = card.old_inferred.intersect(card.possible)
        card.old_inferred = None
        card.finessed = False
        card.hidden = False
        card.superposition = False


def remove_finesse(engine: "Engine", wc: WaitingConnection) -> None:
    """
    Take back the assumptions a chain made: each connection card loses the
    identities it was assumed to be (falling back to its snapshot when nothing
    is left), and the focus loses the chain's inference.
    """
    state, common = engine.state, engine.common

    for conn in wc.connections:
        if state.hand_of(conn.order) is None:
            continue
        if conn.type in (ConnectionType.FINESSE, ConnectionType.PROMPT):
            _unassume(common, conn)

    if state.hand_of(wc.focus) is not None:
        focus = common.thoughts[wc.focus]
        if len(focus.possible) > 1:
            focus.inferred = focus.inferred.subtract(wc.inference)
        if not focus.inferred:
            print(f"no inferences left on focus {wc.focus}, resetting", file=engine.log)
            common.reset_card(wc.focus)


def remove_waiting_connection(engine: "Engine", wc: WaitingConnection, unwind: bool) -> None:
    common = engine.common
    if unwind:
        remove_finesse(engine, wc)
    elif engine.state.hand_of(wc.focus) is not None:
        # an unassumed reading only widened the focus
        still_possible = any(
            w is not wc and w.focus == wc.focus and w.inference == wc.inference
            for w in common.waiting_connections
        )
        focus = common.thoughts[wc.focus]
        narrowed = focus.inferred.subtract(wc.inference)
        if narrowed and not still_possible:
            focus.inferred = narrowed
    if wc in common.waiting_connections:
        common.waiting_connections.remove(wc)
