from typing import TYPE_CHECKING

from typing_extensions import override

from conventions.base import Convention, clue_touches, make_clue
from identity_set import IdentitySet
from utils import MAX_HINT_TOKENS, Action

if TYPE_CHECKING:
    from engine import Engine


class Conventionless(Convention):
    """
    Plays only what the clues themselves prove: no focus, no finesses, no
    inference beyond elimination.
    """

    name = "conventionless"

    @override
    def interpret_clue(self, engine: "Engine", action: Action) -> None:
        engine.update_beliefs()

    @override
    def interpret_discard(self, engine: "Engine", action: Action) -> None:
        pass

    @override
    def update_turn(self, engine: "Engine", action: Action) -> bool:
        return False

    @override
    def take_action(self, engine: "Engine") -> Action:
        state, me = engine.state, engine.me
        us = state.our_player_index
        hand = state.hands[us]

        playables = me.thinks_playables(state, us)
        if playables:
            return Action(Action.ActionType.PLAY, player=us, order=playables[0])

        if state.clue_tokens > 0:
            clue = self._find_play_clue(engine)
            if clue is not None:
                return clue

        if state.clue_tokens < MAX_HINT_TOKENS:
            trash = me.thinks_trash(state, us)
            if trash:
                return Action(Action.ActionType.DISCARD, player=us, order=trash[0])
            unclued = [o for o in hand if not me.thoughts[o].clued]
            order = unclued[-1] if unclued else hand[-1]
            return Action(Action.ActionType.DISCARD, player=us, order=order)

        clue = self._find_any_clue(engine)
        if clue is not None:
            return clue
        return Action(Action.ActionType.PLAY, player=us, order=hand[0])

    def _find_play_clue(self, engine: "Engine") -> Action | None:
        """A clue after which some unclued card is known to be playable."""
        state, common = engine.state, engine.common
        us = state.our_player_index
        num_suits = state.variant.num_suits

        for target in state.in_between(us, us):
            for order in state.hands[target]:
                identity = state.visible(order)
                card = common.thoughts[order]
                if identity is None or card.clued or not state.is_playable(identity):
                    continue
                for clue in state.variant.all_clues():
                    if not state.variant.touched(identity, clue):
                        continue
                    ids = IdentitySet.create(num_suits, state.variant.find_possibilities(clue))
                    if all(state.is_playable(i) for i in card.possible.intersect(ids)):
                        return make_clue(state, target, clue)
        return None

    def _find_any_clue(self, engine: "Engine") -> Action | None:
        state = engine.state
        us = state.our_player_index
        for target in state.in_between(us, us):
            for clue in state.variant.all_clues():
                if clue_touches(state, target, clue):
                    return make_clue(state, target, clue)
        return None
