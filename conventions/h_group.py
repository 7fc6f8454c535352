from typing import TYPE_CHECKING

from typing_extensions import override

from connection import (
    Connection,
    ConnectionType,
    Feasible,
    FocusPossibility,
    Infeasible,
    WaitingConnection,
)
from conventions.base import Convention, clue_touches, make_clue
from identity_set import IdentitySet
from resolver import assign_connections, find_own_finesses, select_committed
from tracker import update_waiting_connections
from utils import MAX_HINT_TOKENS, MAX_RANK, Action, Clue, ClueType, Identity, Level, format_card

if TYPE_CHECKING:
    from engine import Engine


def find_chop(engine: "Engine", player_index: int, before_clue: bool = False) -> int | None:
    """
    The rightmost card that is not saved. With `before_clue`, cards touched by
    the clue being interpreted still count as unclued.
    """
    common = engine.common
    for order in reversed(engine.state.hands[player_index]):
        card = common.thoughts[order]
        clued = card.clued and not (before_clue and card.newly_clued)
        if not clued and not card.chop_moved and not card.finessed:
            return order
    return None


def _several_blind_plays(connections: list[Connection], us: int) -> bool:
    """Whether some other seat must blind play more than one card of the chain."""
    blind: dict[int, int] = {}
    for conn in connections:
        if conn.type == ConnectionType.FINESSE and not conn.hidden and conn.reacting != us:
            blind[conn.reacting] = blind.get(conn.reacting, 0) + 1
    return any(count > 1 for count in blind.values())


def determine_focus(engine: "Engine", target: int, touched: list[int]) -> tuple[int, bool]:
    """
    The card a clue is about, and whether it was on chop: chop if touched,
    else the leftmost newly clued card, else the leftmost chop moved one,
    else the leftmost touched.
    """
    common = engine.common
    hand = engine.state.hands[target]

    chop = find_chop(engine, target, before_clue=True)
    if chop is not None and chop in touched:
        return chop, True

    for predicate in (
        lambda o: common.thoughts[o].newly_clued,
        lambda o: common.thoughts[o].chop_moved,
        lambda o: True,
    ):
        for order in hand:
            if order in touched and predicate(order):
                return order, False
    raise ValueError(f"Clue touched no cards in player {target}'s hand")


class HGroup(Convention):
    """
    A subset of the H-group conventions: good touch, chop focus with 2/5 and
    critical saves, play clues through prompts and (layered) finesses, fix and
    tempo clues, and 5 chop moves.
    """

    name = "h-group"

    @override
    def interpret_clue(self, engine: "Engine", action: Action) -> None:
        state, common = engine.state, engine.common
        assert action.clue is not None and action.giver is not None and action.target is not None
        us = state.our_player_index
        giver, target, clue = action.giver, action.target, action.clue
        action_index = len(state.action_list) - 1

        focus, chop_focus = determine_focus(engine, target, action.touched)
        focus_card = common.thoughts[focus]
        focus_card.focused = True

        resets = common.good_touch_elim(state)

        if not any(common.thoughts[o].newly_clued for o in action.touched):
            self._interpret_reclue(engine, action, focus, resets, action_index)
            engine.update_beliefs()
            return

        if self._five_chop_move(engine, action, focus):
            engine.update_beliefs()
            return

        saves = self._save_identities(engine, giver, focus, clue, chop_focus)
        looks_direct = target == us and (
            any(state.is_playable(i) for i in focus_card.inferred) or bool(saves)
        )

        possibilities: list[FocusPossibility] = []
        for identity in focus_card.inferred:
            if state.is_basic_trash(identity):
                continue
            if identity in saves:
                possibilities.append(FocusPossibility(identity, save=True))
                continue
            if state.is_playable(identity):
                possibilities.append(FocusPossibility(identity))
                continue

            outcome = find_own_finesses(
                engine,
                giver,
                target,
                identity,
                looks_direct,
                ignore_player=target if target != us else None,
            )
            match outcome:
                case Infeasible(reason):
                    print(f"{format_card(identity)} infeasible: {reason}", file=engine.log)
                case Feasible(connections):
                    possibilities.append(FocusPossibility(identity, connections))

        if not possibilities:
            print(f"no interpretation of {action} found", file=engine.log)
            engine.update_beliefs()
            return

        ids = IdentitySet.create(state.variant.num_suits, [p.identity for p in possibilities])
        narrowed = focus_card.inferred.intersect(ids)
        if narrowed:
            focus_card.narrow(ids, action_index, state.turn_count)
        print(
            f"focus {focus} could be {[format_card(p.identity) for p in possibilities]}",
            file=engine.log,
        )

        if target != us:
            actual = state.visible(focus)
            committed = next((p for p in possibilities if p.identity == actual), None)
            if committed is None:
                print(f"{format_card(actual)} is not a valid reading of this clue", file=engine.log)
        else:
            committed = select_committed(possibilities, us)

        if committed is not None and committed.save:
            action.important = True

        with_connections = [p for p in possibilities if p.connections]
        for p in with_connections:
            wc = WaitingConnection(
                p.connections,
                focus,
                p.identity,
                giver,
                target,
                action_index,
                state.turn_count,
                symmetric=p is not committed,
                ambiguous=_several_blind_plays(p.connections, us),
            )
            common.waiting_connections.append(wc)
            print(f"waiting on {wc}", file=engine.log)

        if committed is not None and committed.connections:
            assign_connections(engine, [committed], action_index)

        for hand in state.hands:
            for order in hand:
                common.thoughts[order].superposition = False

        engine.update_beliefs()

    def _interpret_reclue(
        self, engine: "Engine", action: Action, focus: int, resets: set[int], action_index: int
    ) -> None:
        """A clue touching no new cards is a fix if it disproved something, else a tempo clue."""
        state, common = engine.state, engine.common

        fixed = [
            o
            for o in action.touched
            if o in resets
            or (common.thoughts[o].reset and action_index in common.thoughts[o].reasoning)
            or all(state.is_basic_trash(i) for i in common.thoughts[o].possible)
        ]
        if fixed and self.level >= Level.FIX:
            print(f"fix clue on {fixed}", file=engine.log)
            action.important = True
            return

        focus_card = common.thoughts[focus]
        playable = focus_card.inferred.filter(state.is_playable)
        if playable:
            print(f"tempo clue on {focus}", file=engine.log)
            focus_card.narrow(playable, action_index, state.turn_count)

    def _five_chop_move(self, engine: "Engine", action: Action, focus: int) -> bool:
        state, common = engine.state, engine.common
        assert action.clue is not None and action.target is not None
        if self.level < Level.BASIC_CM:
            return False
        if action.clue != Clue(ClueType.RANK, MAX_RANK) or not common.thoughts[focus].newly_clued:
            return False

        hand = state.hands[action.target]
        chop = find_chop(engine, action.target, before_clue=True)
        if chop is None or chop == focus or hand.index(focus) + 1 != hand.index(chop):
            return False

        print(f"5 chop move on {chop}", file=engine.log)
        common.thoughts[chop].chop_moved = True
        action.important = True
        return True

    def _save_identities(
        self, engine: "Engine", giver: int, focus: int, clue: Clue, chop_focus: bool
    ) -> set[Identity]:
        """Identities a clue on chop could be saving."""
        state, common = engine.state, engine.common
        if not chop_focus:
            return set()

        saves = set()
        for identity in common.thoughts[focus].inferred:
            if state.is_basic_trash(identity) or state.is_playable(identity):
                continue
            if clue.type == ClueType.COLOUR and identity.rank == MAX_RANK:
                continue
            if state.is_critical(identity):
                saves.add(identity)
            elif clue == Clue(ClueType.RANK, 2):
                # the giver can not see their own hand
                others = [
                    o
                    for o in state.visible_copies(identity, exclude=focus)
                    if o not in state.hands[giver]
                ]
                if not others:
                    saves.add(identity)
        return saves

    @override
    def interpret_discard(self, engine: "Engine", action: Action) -> None:
        state = engine.state
        if action.failed:
            print(f"player {action.player} bombed {format_card(action.identity)}", file=engine.log)
        elif action.identity is not None and state.is_critical(action.identity):
            print(
                f"player {action.player} discarded critical {format_card(action.identity)}",
                file=engine.log,
            )

    @override
    def interpret_play(self, engine: "Engine", action: Action) -> None:
        state = engine.state
        print(f"score is now {state.score}/{state.max_score}", file=engine.log)

    @override
    def update_turn(self, engine: "Engine", action: Action) -> bool:
        return update_waiting_connections(engine)

    @override
    def take_action(self, engine: "Engine") -> Action:
        state, me = engine.state, engine.me
        us = state.our_player_index
        hand = state.hands[us]

        if state.clue_tokens > 0:
            save = self._find_save_clue(engine, state.next_player_index(us))
            if save is not None:
                return save

        trash = me.thinks_trash(state, us)
        playables = [o for o in me.thinks_playables(state, us) if o not in trash]
        if playables:

            def priority(o):
                card = me.thoughts[o]
                return (
                    not card.finessed,
                    card.finesse_index if card.finessed else 0,
                    min(i.rank for i in card.possibilities),
                )

            return Action(Action.ActionType.PLAY, player=us, order=min(playables, key=priority))

        if state.clue_tokens > 0:
            clue = self._find_play_clue(engine)
            if clue is not None:
                return clue

        if state.clue_tokens < MAX_HINT_TOKENS:
            if trash:
                return Action(Action.ActionType.DISCARD, player=us, order=trash[0])
            chop = find_chop(engine, us)
            if chop is not None:
                return Action(Action.ActionType.DISCARD, player=us, order=chop)

        if state.clue_tokens > 0:
            clue = self._find_stall_clue(engine)
            if clue is not None:
                return clue

        if state.clue_tokens < MAX_HINT_TOKENS:
            return Action(Action.ActionType.DISCARD, player=us, order=hand[-1])
        return Action(Action.ActionType.PLAY, player=us, order=hand[0])

    def _good_touch(self, engine: "Engine", touched: list[int]) -> bool:
        """Whether every newly touched card is useful and not already touched elsewhere."""
        state, common = engine.state, engine.common
        seen: set[Identity] = set()
        for order in touched:
            if common.thoughts[order].clued:
                continue
            identity = state.visible(order)
            if identity is None or state.is_basic_trash(identity) or identity in seen:
                return False
            seen.add(identity)
            for hand in state.hands:
                for other in hand:
                    if other == order or not common.thoughts[other].touched:
                        continue
                    if state.visible(other) == identity or common.thoughts[other].matches(
                        identity, infer=True
                    ):
                        return False
        return True

    def _find_save_clue(self, engine: "Engine", target: int) -> Action | None:
        state, common = engine.state, engine.common
        if common.thinks_loaded(state, target):
            return None
        chop = find_chop(engine, target)
        if chop is None:
            return None
        identity = state.visible(chop)
        if identity is None or state.is_basic_trash(identity) or state.is_playable(identity):
            return None

        if identity.rank in (2, MAX_RANK):
            others = [
                o
                for o in state.visible_copies(identity, exclude=chop)
                if o not in state.hands[target]
            ]
            if identity.rank == MAX_RANK or not others:
                return make_clue(state, target, Clue(ClueType.RANK, identity.rank))
        if state.is_critical(identity):
            return make_clue(state, target, Clue(ClueType.COLOUR, identity.suit))
        return None

    def _find_play_clue(self, engine: "Engine") -> Action | None:
        """The good-touch clue whose focus is playable and that touches the most new cards."""
        state, common = engine.state, engine.common
        us = state.our_player_index
        best: tuple[int, Action] | None = None

        for target in state.in_between(us, us):
            chop = find_chop(engine, target)
            for clue in state.variant.all_clues():
                touched = clue_touches(state, target, clue)
                new = [o for o in touched if not common.thoughts[o].clued]
                if not new or not self._good_touch(engine, touched):
                    continue
                focus = chop if chop in new else new[0]
                identity = state.visible(focus)
                if identity is None or not state.is_playable(identity):
                    continue
                if best is None or len(new) > best[0]:
                    best = (len(new), make_clue(state, target, clue))
        return best[1] if best is not None else None

    def _find_stall_clue(self, engine: "Engine") -> Action | None:
        state = engine.state
        us = state.our_player_index
        fallback = None
        for target in state.in_between(us, us):
            for clue in state.variant.all_clues():
                touched = clue_touches(state, target, clue)
                if not touched:
                    continue
                if self._good_touch(engine, touched):
                    return make_clue(state, target, clue)
                if fallback is None:
                    fallback = make_clue(state, target, clue)
        return fallback
