import copy
import sys
from typing import Final, Sequence

from card import ClueRecord
from conventions.base import Convention
from errors import RewindDepthError
from identity_set import IdentitySet
from players import COMMON, Player, Viewer
from state import State
from utils import MAX_HINT_TOKENS, MAX_RANK, Action, Identity, Level, NullStream, format_card
from variant import Variant

MAX_REWIND_DEPTH: Final[int] = 3
MAX_REWINDS: Final[int] = 50


class Engine:
    """
    Belief state for one seat: the public game state, a Player for every seat
    as we model them, and the common-knowledge Player they all share.

    Actions are fed in strictly in order through `handle_action`. The active
    convention interprets clues and plays; everything else here is the same
    for every convention.
    """

    def __init__(
        self,
        player_names: Sequence[str],
        our_player_index: int,
        variant: Variant,
        convention: Convention,
        log=sys.stdout,
    ):
        self.state: State = State(player_names, our_player_index, variant)
        self.players: list[Player] = [
            Player(Viewer(i), variant.num_suits) for i in range(self.state.num_players)
        ]
        self.common: Player = Player(COMMON, variant.num_suits)
        self.convention: Convention = convention
        self.log = log

        self.last_actions: dict[int, Action] = {}
        # rewind corrections for the next clue, indexed by connection step
        self.next_ignore: list[list[tuple[int, Identity | None]]] = []
        self.rewinds: int = 0
        self.rewind_depth: int = 0

    def __repr__(self) -> str:
        return f"Engine(seat={self.state.our_player_index}, convention={self.convention.name})"

    @property
    def level(self) -> Level:
        return self.convention.level

    @property
    def me(self) -> Player:
        return self.players[self.state.our_player_index]

    @property
    def all_players(self) -> list[Player]:
        return self.players + [self.common]

    def ignore_orders(self, conn_index: int, suit: int) -> set[int]:
        """Orders a rewind told us to skip at this step of a chain in this suit."""
        if conn_index >= len(self.next_ignore):
            return set()
        return {
            order
            for order, inference in self.next_ignore[conn_index]
            if inference is None or inference.suit == suit
        }

    def handle_action(self, action: Action) -> None:
        self.state.action_list.append(action)

        match action.action_type:
            case Action.ActionType.DRAW:
                self.on_draw(action)
            case Action.ActionType.CLUE:
                print(action, file=self.log)
                self.on_clue(action)
                self.convention.interpret_clue(self, action)
                self.last_actions[action.giver] = action
                self.next_ignore = []
            case Action.ActionType.PLAY:
                print(action, file=self.log)
                if self.on_play(action):
                    return
                self.update_beliefs()
                self.convention.interpret_play(self, action)
                self.last_actions[action.player] = action
            case Action.ActionType.DISCARD:
                print(action, file=self.log)
                if self.on_discard(action):
                    return
                self.update_beliefs()
                self.convention.interpret_discard(self, action)
                self.last_actions[action.player] = action
            case Action.ActionType.TURN:
                self.on_turn(action)
            case Action.ActionType.IDENTIFY:
                self.on_identify(action)
            case Action.ActionType.IGNORE:
                self.on_ignore(action)
            case _:
                raise ValueError(f"Unknown action type: {action.action_type}")

    def on_draw(self, action: Action) -> None:
        assert action.player is not None and action.order is not None
        state = self.state
        identity = None if action.player == state.our_player_index else action.identity

        state.hands[action.player].insert(0, action.order)
        state.set_identity(action.order, identity)
        state.cards_left -= 1
        drawn_index = len(state.action_list) - 1

        for player in self.players:
            actual = identity if player.seat != action.player else None
            player.add_card(action.order, actual, drawn_index)
        self.common.add_card(action.order, None, drawn_index)

        for player in self.players:
            player.card_elim(state)

    def on_clue(self, action: Action) -> None:
        assert action.clue is not None and action.target is not None
        state = self.state
        if state.clue_tokens <= 0:
            raise RuntimeError("No clue tokens left")
        state.clue_tokens -= 1

        touched_ids = IdentitySet.create(
            state.variant.num_suits, state.variant.find_possibilities(action.clue)
        )
        action_index = len(state.action_list) - 1

        for player in self.all_players:
            for order in state.hands[action.target]:
                card = player.thoughts[order]
                if order in action.touched:
                    card.possible = card.possible.intersect(touched_ids)
                    card.narrow(touched_ids, action_index, state.turn_count)
                    if not card.clued:
                        card.newly_clued = True
                    card.clued = True
                    card.clues.append(ClueRecord(action.clue, action.giver, state.turn_count))
                else:
                    card.possible = card.possible.subtract(touched_ids)
                    card.inferred = card.inferred.subtract(touched_ids)

                if not card.inferred:
                    print(
                        f"{player.viewer} has no inferences left on {order}, resetting",
                        file=self.log,
                    )
                    player.reset_card(order)

        for player in self.all_players:
            player.card_elim(state)
            player.refresh_links(state)

    def on_play(self, action: Action) -> bool:
        """
        Move a successfully played card onto its stack. Returns True if our own
        card turned out to be something we did not expect and a rewind took over.
        """
        assert action.order is not None and action.identity is not None
        state = self.state
        identity = action.identity

        if self._check_identify(action):
            return True

        if state.hand_of(action.order) != action.player:
            raise ValueError(f"Card {action.order} is not in player {action.player}'s hand")
        if not state.is_playable(identity):
            raise ValueError(f"{format_card(identity)} is not playable")

        state.hands[action.player].remove(action.order)
        state.set_identity(action.order, identity)
        state.play_stacks[identity.suit] = identity.rank
        if identity.rank == MAX_RANK and state.clue_tokens < MAX_HINT_TOKENS:
            state.clue_tokens += 1

        self._reveal(action.order, identity)
        return False

    def on_discard(self, action: Action) -> bool:
        """
        Discard a card, or bomb it when `action.failed`. Returns True if a rewind took over.
        """
        assert action.order is not None and action.identity is not None
        state = self.state
        identity = action.identity

        if self._check_identify(action):
            return True

        if state.hand_of(action.order) != action.player:
            raise ValueError(f"Card {action.order} is not in player {action.player}'s hand")

        touched = self.common.thoughts[action.order].touched

        state.hands[action.player].remove(action.order)
        state.set_identity(action.order, identity)
        state.discard_stacks[identity.suit, identity.rank - 1] += 1
        if action.failed:
            state.strikes += 1
        else:
            state.clue_tokens = min(state.clue_tokens + 1, MAX_HINT_TOKENS)

        if (
            state.discard_stacks[identity.suit, identity.rank - 1] == state.card_count(identity)
            and identity.rank <= state.max_ranks[identity.suit]
        ):
            state.max_ranks[identity.suit] = identity.rank - 1
            print(
                f"all copies of {format_card(identity)} are gone, "
                f"max rank is now {state.max_ranks[identity.suit]}",
                file=self.log,
            )

        self._reveal(action.order, identity)

        if touched and state.base_count(identity) < state.card_count(identity):
            restored = self.common.restore_elim(state, identity)
            if restored:
                print(f"restored {format_card(identity)} on {restored}", file=self.log)
        return False

    def _check_identify(self, action: Action) -> bool:
        """
        Our own card left our hand as an identity common knowledge had ruled out.
        Rewind to just after it was drawn and replay knowing what it was.
        """
        if action.player != self.state.our_player_index:
            return False
        card = self.common.thoughts[action.order]
        if card.rewinded or action.identity in card.inferred:
            return False
        if action.action_type == Action.ActionType.DISCARD and not (action.failed or card.touched):
            return False

        print(
            f"our card {action.order} was {format_card(action.identity)}, "
            f"not one of {[str(i) for i in card.inferred]}",
            file=self.log,
        )
        identify = Action(
            Action.ActionType.IDENTIFY,
            player=action.player,
            order=action.order,
            identity=action.identity,
        )
        return self.rewind(card.drawn_index + 1, identify)

    def _reveal(self, order: int, identity: Identity) -> None:
        known = IdentitySet.create(self.state.variant.num_suits, identity)
        for player in self.all_players:
            card = player.thoughts[order]
            card.possible = known
            card.inferred = known
            if not player.viewer.is_common:
                card.actual = identity

    def on_turn(self, action: Action) -> None:
        if self.convention.update_turn(self, action):
            return

        state = self.state
        state.turn_count = action.turn if action.turn is not None else state.turn_count + 1
        state.current_player_index = action.player

        for player in self.all_players:
            for hand in state.hands:
                for order in hand:
                    player.thoughts[order].newly_clued = False

        self.update_beliefs()

    def on_identify(self, action: Action) -> None:
        assert action.order is not None and action.identity is not None
        self.state.set_identity(action.order, action.identity)
        for player in self.players:
            card = player.thoughts[action.order]
            card.actual = action.identity
            card.rewinded = True
        self.common.thoughts[action.order].rewinded = True

        for player in self.players:
            player.card_elim(self.state)

    def on_ignore(self, action: Action) -> None:
        assert action.order is not None and action.conn_index is not None
        while len(self.next_ignore) <= action.conn_index:
            self.next_ignore.append([])
        self.next_ignore[action.conn_index].append((action.order, action.inference))

    def update_beliefs(self) -> None:
        """
        Run elimination on common knowledge, then bring every seat back in line with it.
        """
        state, common = self.state, self.common
        resets = common.good_touch_elim(state)
        for order in sorted(resets):
            print(f"good touch left no inferences on {order}, reset", file=self.log)
        common.card_elim(state)
        common.refresh_links(state)
        self.team_elim()

    def team_elim(self) -> None:
        state, common = self.state, self.common
        for player in self.players:
            for hand in state.hands:
                for order in hand:
                    card = player.thoughts[order]
                    card.sync_from(common.thoughts[order])
                    if not card.inferred:
                        player.reset_card(order)
            player.waiting_connections = common.waiting_connections
            player.card_elim(state)
            player.refresh_links(state)
            player.update_hypo_stacks(state)
        common.update_hypo_stacks(state)

    def create_blank(self) -> "Engine":
        return Engine(
            self.state.player_names,
            self.state.our_player_index,
            self.state.variant,
            self.convention,
            log=NullStream(),
        )

    def rewind(self, action_index: int, rewind_action: Action) -> bool:
        """
        Replay the game with `rewind_action` inserted at `action_index` and adopt
        the result. Returns False if that correction was already applied there.

        Callers must stop handling the current action when this returns True,
        since every perspective has been rebuilt underneath them.
        """
        if self.rewind_depth >= MAX_REWIND_DEPTH:
            raise RewindDepthError(f"Rewind nested more than {MAX_REWIND_DEPTH} deep")
        if self.rewinds >= MAX_REWINDS:
            raise RewindDepthError(f"More than {MAX_REWINDS} rewinds in one game")

        actions = self.state.action_list
        if rewind_action in actions[max(action_index - 1, 0) : action_index + 1]:
            print(f"already rewound {rewind_action} at {action_index}, skipping", file=self.log)
            return False

        print(f"rewinding to action {action_index}: {rewind_action}", file=self.log)

        new_engine = self.create_blank()
        new_engine.rewinds = self.rewinds + 1
        new_engine.rewind_depth = self.rewind_depth + 1

        history = actions[:action_index] + [rewind_action] + actions[action_index:]
        for action in history:
            new_engine.handle_action(Action.from_dict(action.to_dict()))

        log, depth = self.log, self.rewind_depth
        self.__dict__.update(new_engine.__dict__)
        self.log = log
        self.rewind_depth = depth

        print(f"rewind complete, replayed {len(history)} actions", file=self.log)
        return True

    def snapshot(self) -> "Engine":
        """A deep copy that can be searched without touching this engine."""
        return copy.deepcopy(self, {id(self.log): NullStream()})
