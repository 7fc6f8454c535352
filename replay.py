import argparse
import json
import os
import sys
from typing import Any, Sequence

from conventions import make_convention
from engine import Engine
from utils import Action, Level, format_card
from variant import get_variant


def save_log(
    path: str, player_names: Sequence[str], actions: Sequence[Action], variant_name: str
) -> None:
    """Write a full-information action log that `load_log` can read back."""
    log_dict: dict[str, Any] = {
        "players": list(player_names),
        "variant": variant_name,
        "actions": [action.to_dict() for action in actions],
    }
    with open(path, "w") as f:
        json.dump(log_dict, f)


def load_log(path: str) -> tuple[list[str], list[Action], str]:
    assert os.path.isfile(path), f"{path} does not exist. Please provide a valid path."
    with open(path, "r") as f:
        log_dict = json.load(f)
    if "players" not in log_dict or "actions" not in log_dict:
        raise ValueError(f"{path} is not an action log")
    actions = [Action.from_dict(a) for a in log_dict["actions"]]
    return log_dict["players"], actions, log_dict.get("variant", "No Variant")


def replay(
    player_names: Sequence[str],
    actions: Sequence[Action],
    our_player_index: int,
    convention: str = "h-group",
    variant_name: str = "No Variant",
    level: Level | None = None,
    log=sys.stdout,
) -> Engine:
    """
    Rebuild one seat's engine from a game log. Our own draws are hidden as they
    were during the game, and rewind corrections recorded by another engine are
    left out so that this one finds its own.
    """
    engine = Engine(
        player_names,
        our_player_index,
        get_variant(variant_name),
        make_convention(convention, level),
        log=log,
    )
    for action in actions:
        if action.action_type in (Action.ActionType.IDENTIFY, Action.ActionType.IGNORE):
            continue
        seen = Action.from_dict(action.to_dict())
        if seen.action_type == Action.ActionType.DRAW and seen.player == our_player_index:
            seen.identity = None
        engine.handle_action(seen)
    return engine


def print_beliefs(engine: Engine, out=sys.stdout) -> None:
    state, common = engine.state, engine.common
    print("play stacks:", state.play_stacks, "clue tokens:", state.clue_tokens, file=out)
    for i, hand in enumerate(state.hands):
        cards = []
        for order in hand:
            card = common.thoughts[order]
            inferred = ",".join(format_card(x) for x in card.inferred)
            flags = "f" if card.finessed else ("c" if card.clued else "")
            cards.append(f"{format_card(state.visible(order))}{flags}[{inferred}]")
        print(state.player_names[i], " ".join(cards), file=out)
    for wc in common.waiting_connections:
        print("waiting:", wc, file=out)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Replay a saved action log from one seat and print the resulting beliefs"
    )
    parser.add_argument("file", help="The path to a json action log written by save_log")
    parser.add_argument("--seat", type=int, default=0, help="The seat to replay as")
    parser.add_argument("--convention", default="h-group", help="The convention the table played")
    parser.add_argument(
        "--level", type=int, default=None, help="The convention level, defaults to the highest"
    )

    args = parser.parse_args()
    names, log_actions, variant = load_log(args.file)
    replayed = replay(
        names,
        log_actions,
        args.seat,
        args.convention,
        variant,
        Level(args.level) if args.level is not None else None,
    )
    print_beliefs(replayed)
    print(f"Replayed {len(log_actions)} actions with {replayed.rewinds} rewinds")
