from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from errors import InternalConsistencyError
from identity_set import IdentitySet
from utils import Identity

if TYPE_CHECKING:
    from players.base import Player
    from state import State

# possibility sets larger than this are never grouped
MAX_GROUP: Final[int] = 5


@dataclass
class Link:
    """
    Cards that share one inference pool with fewer identities than cards. A
    promised link holds a single identity owed by whichever card shows it first.
    """

    orders: list[int]
    identities: list[Identity]
    promised: bool = False


def card_elim(player: "Player", state: "State") -> None:
    """
    Remove every identity whose copies are all accounted for, either out of play
    or as a card this player is certain of, from all other cards. A card that
    becomes certain through this can complete another identity, so the newly
    certain identities are queued up behind the rest.

    Cards in different hands sharing a small set of possibilities are also
    checked as a group: when there are as many of them as copies left, each
    holder has the ones the others can see ruled out.
    """
    identities = list(player.all_possible)
    certain: dict[Identity, set[int]] = {}
    groups: dict[IdentitySet, list[tuple[int, int]]] = {}
    grouped: dict[int, IdentitySet] = {}

    def add_to_maps(holder: int, order: int) -> None:
        card = player.thoughts[order]
        identity = card.identity()
        if identity is not None:
            certain.setdefault(identity, set()).add(order)
            return
        if len(card.possible) > MAX_GROUP:
            return

        key = card.possible
        old = grouped.get(order)
        if old is not None:
            if old == key:
                return
            groups[old] = [entry for entry in groups.get(old, []) if entry[1] != order]

        group = groups.get(key, []) + [(holder, order)]
        copies = sum(state.card_count(i) - state.base_count(i) for i in key)
        if copies > len(group):
            groups[key] = group
            grouped[order] = key
            return

        # as many cards as copies: everyone holds what they cannot see
        for seen_by, seen in group:
            identity = state.visible(seen)
            if identity is None:
                continue
            left = state.card_count(identity) - state.base_count(identity)
            for holder_of, other in group:
                shown = sum(1 for h, o in group if h != holder_of and state.visible(o) == identity)
                if seen_by == holder_of or shown < left:
                    continue
                other_card = player.thoughts[other]
                if identity not in other_card.possible:
                    continue
                other_card.possible = other_card.possible.subtract(identity)
                other_card.inferred = other_card.inferred.intersect(other_card.possible)
                if not other_card.possible:
                    raise InternalConsistencyError(
                        f"{player.viewer} has no possible identities left for card {other}"
                    )
                if not other_card.inferred:
                    reset_card(player, other)
                now_certain = other_card.identity()
                if now_certain is not None:
                    certain.setdefault(now_certain, set()).add(other)
                    identities.append(now_certain)
            grouped.pop(seen, None)
        groups.pop(key, None)

    for holder, hand in enumerate(state.hands):
        for order in hand:
            add_to_maps(holder, order)

    index = 0
    while index < len(identities):
        identity = identities[index]
        index += 1

        orders = certain.get(identity, set())
        total = state.card_count(identity)
        accounted = state.base_count(identity) + len(orders)
        if accounted > total:
            raise InternalConsistencyError(
                f"{player.viewer} accounts for {accounted} copies of {identity}, "
                f"only {total} exist"
            )
        if identity not in player.all_possible or accounted < total:
            continue

        player.all_possible = player.all_possible.subtract(identity)
        player.all_inferred = player.all_inferred.subtract(identity)

        for holder, hand in enumerate(state.hands):
            for order in hand:
                card = player.thoughts[order]
                if order in orders or identity not in card.possible:
                    continue

                card.possible = card.possible.subtract(identity)
                card.inferred = card.inferred.subtract(identity)
                if not card.possible:
                    raise InternalConsistencyError(
                        f"{player.viewer} has no possible identities left for card {order}"
                    )
                if not card.inferred:
                    reset_card(player, order)
                if len(card.possible) == 1:
                    identities.append(next(iter(card.possible)))
                add_to_maps(holder, order)


def good_touch_elim(player: "Player", state: "State", only_self: bool = False) -> set[int]:
    """
    Remove from touched cards the identities other touched cards already claim.

    Returns the orders of cards left with no inferences, which have been reset.
    """
    unconfirmed: set[int] = set()
    for wc in player.waiting_connections:
        # when this player reacts next, they treat the connection as true
        if wc.current.reacting == player.seat:
            continue
        for conn in wc.remaining:
            if player.thoughts[conn.order].identity() is None:
                unconfirmed.add(conn.order)

    match_map: dict[Identity, set[int]] = {}
    hard_match_map: dict[Identity, set[int]] = {}
    # unresolved touched cards grouped by their inferences, common knowledge only
    cross_map: dict[IdentitySet, set[int]] = {}

    def add_to_maps(order: int) -> None:
        card = player.thoughts[order]
        if not card.touched:
            return
        identity = card.identity(infer=True, symmetric=player.viewer.is_common)
        if identity is None:
            if player.viewer.is_common and len(card.inferred) < MAX_GROUP:
                cross_map.setdefault(card.inferred, set()).add(order)
            return

        visible = state.visible(order)
        elsewhere = len(state.visible_copies(identity, exclude=order))
        if (
            (visible is not None and visible != identity)
            or state.base_count(identity) + elsewhere == state.card_count(identity)
            or (not card.matches(identity) and card.newly_clued and not card.focused)
            or order in unconfirmed
        ):
            return

        if card.matches(identity) or card.focused:
            hard_match_map.setdefault(identity, set()).add(order)
        matches = match_map.setdefault(identity, set())
        matches.add(order)

        # more claims than copies, and one of them is visibly real: the others
        # are duplicates their holders cannot see, so they do not count as hard
        if (
            identity in hard_match_map
            and state.base_count(identity) + len(matches) > state.card_count(identity)
            and any(state.visible(o) == identity for o in matches)
        ):
            del hard_match_map[identity]

    def cross_elim() -> None:
        for inferred, orders in list(cross_map.items()):
            if len(orders) != len(inferred):
                continue

            holders = {o: state.hand_of(o) for o in orders}
            changed = False
            for order in orders:
                card = player.thoughts[order]
                for other in orders:
                    seen = state.visible(other)
                    if holders[other] == holders[order] or seen is None:
                        continue
                    if seen in card.inferred:
                        card.inferred = card.inferred.subtract(seen)
                        changed = True
                if not card.inferred:
                    reset_card(player, order)

            if changed:
                cross_map.pop(inferred, None)
                for order in orders:
                    add_to_maps(order)

    # (order, holder, chop moved for common knowledge)
    candidates: list[tuple[int, int, bool]] = []
    for i, hand in enumerate(state.hands):
        if only_self and i != player.seat:
            continue
        for order in hand:
            add_to_maps(order)
            card = player.thoughts[order]
            if (
                not card.inferred
                or all(state.is_basic_trash(inf) for inf in card.inferred)
                or card.certain_finessed
            ):
                continue
            if card.touched:
                candidates.append((order, i, False))
            elif card.chop_moved:
                candidates.append((order, i, player.viewer.is_common))

    cross_elim()

    identities = list(player.all_possible)
    resets: set[int] = set()

    index = 0
    while index < len(identities):
        identity = identities[index]
        index += 1

        soft_matches = match_map.get(identity)
        if soft_matches is None and not state.is_basic_trash(identity):
            continue
        hard_matches = hard_match_map.get(identity)
        matches = hard_matches if hard_matches is not None else (soft_matches or set())

        for candidate in list(candidates):
            order, holder, cm = candidate
            card = player.thoughts[order]
            if order in matches or not card.inferred or identity not in card.inferred:
                continue

            visible_elim = (
                any(state.visible(o) in (None, identity) for o in matches)
                and state.base_count(identity) + len(matches) >= state.card_count(identity)
            )
            if not (cm and visible_elim) and _asymmetric(player, state, matches, holder, card):
                continue

            if card.finessed and card.finesse_index >= len(state.action_list) - 2:
                card.certain_finessed = True
                candidates.remove(candidate)
                continue

            if cm and not visible_elim:
                continue

            before = len(card.inferred)
            card.inferred = card.inferred.subtract(identity)

            if player.viewer.is_common:
                elims = player.elims.setdefault(identity, [])
                if order not in elims:
                    elims.append(order)

            if not cm:
                if not card.inferred and not card.reset:
                    reset_card(player, order)
                    resets.add(order)
                elif len(card.inferred) == 1 and before > 1:
                    only = next(iter(card.inferred))
                    if not state.is_basic_trash(only):
                        identities.append(only)

            add_to_maps(order)

    return resets


def _asymmetric(player, state, matches, holder, card) -> bool:
    """
    Whether every match could only have come from someone who cannot see the
    candidate card, so no duplication was implied.
    """
    if not matches:
        return False
    original = card.clues[0] if card.clues else None

    # every match was clued later by the candidate's holder
    def clued_later_by_holder(o):
        first = player.thoughts[o].clues[0] if player.thoughts[o].clues else None
        return (
            first is not None
            and first.giver == holder
            and first.turn > (original.turn if original is not None else 0)
        )

    if all(clued_later_by_holder(o) for o in matches):
        return True

    # every match sits unresolved in the hand of whoever first clued the candidate
    if original is None:
        return False
    giver_hand = state.hands[original.giver]
    return all(
        o in giver_hand and len(player.thoughts[o].possibilities) > 1 for o in matches
    )


def reset_card(player: "Player", order: int) -> None:
    card = player.thoughts[order]
    card.reset = True

    if card.finessed:
        card.finessed = False
        card.hidden = False
        if card.old_inferred is not None:
            card.inferred = card.old_inferred.intersect(card.possible)
        else:
            card.inferred = card.possible
    else:
        card.inferred = card.possible


def find_links(player: "Player", state: "State", hand: list[int] | None = None) -> None:
    if hand is None:
        if player.viewer.is_common:
            for h in state.hands:
                find_links(player, state, h)
            return
        hand = state.hands[player.seat]

    linked = {o for link in player.links for o in link.orders}

    for order in hand:
        card = player.thoughts[order]
        if (
            order in linked
            or card.identity() is not None
            or not card.inferred
            or len(card.inferred) > 3
            or all(state.is_basic_trash(i) for i in card.inferred)
        ):
            continue

        linked_orders = [
            o
            for o in hand
            if player.thoughts[o].identity() is None
            and player.thoughts[o].inferred == card.inferred
        ]
        if len(linked_orders) > len(card.inferred):
            player.links.append(Link(linked_orders, list(card.inferred), False))
        linked.update(linked_orders)


def refresh_links(player: "Player", state: "State") -> None:
    """
    Drop links that no longer hold, resolve promised links down to one card,
    then look for new ones.
    """
    links: list[Link] = []

    for link in player.links:
        if link.promised:
            identity = link.identities[0]
            in_hand = [o for o in link.orders if state.hand_of(o) is not None]
            if any(player.thoughts[o].matches(identity, infer=True) for o in in_hand):
                continue
            viable = [o for o in in_hand if identity in player.thoughts[o].possible]
            if not viable:
                continue
            if len(viable) == 1:
                card = player.thoughts[viable[0]]
                card.inferred = card.inferred.intersect(identity)
                if not card.inferred:
                    reset_card(player, viable[0])
                continue
            links.append(Link(viable, [identity], True))
        else:
            first = player.thoughts[link.orders[0]].inferred
            if all(
                state.hand_of(o) is not None
                and player.thoughts[o].identity() is None
                and player.thoughts[o].inferred == first
                for o in link.orders
            ):
                links.append(link)

    player.links = links
    find_links(player, state)


def restore_elim(player: "Player", state: "State", identity: Identity) -> list[int]:
    """
    Undo good-touch eliminations of an identity, e.g. after the card that
    claimed it turned out to be something else. Returns the restored orders.
    """
    restored = []
    for order in player.elims.pop(identity, []):
        if state.hand_of(order) is None:
            continue
        card = player.thoughts[order]
        if identity in card.possible and identity not in card.inferred:
            card.inferred = card.inferred.union(identity)
            restored.append(order)
    return restored
