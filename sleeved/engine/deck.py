"""
Deck and hand management.

Per player and per resource type:
- Sleeves: one rotating pool. Playing a sleeve moves it available -> used;
  when available runs dry, every used sleeve (including the one just
  played) cycles back.
- Animals: deck -> hand -> discard; the hand is topped back up to
  starting_animal_hand after every round.
- Equipment: deck -> hand -> discard; a fixed equipment_draw_per_round is
  drawn after every round, and draw_cards effects draw on top of that.

Whenever a draw exhausts the deck, the discard pile is reshuffled
(Fisher-Yates) into a new deck and the draw continues.
"""

import random
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from sleeved.models.card import CardSnapshot
from sleeved.models.failure import InvalidSelectionError
from sleeved.models.game import CommittedCard, PlayerGameState
from sleeved.models.rules import GameRules

_default_rng = random.Random()


def shuffle(cards: Sequence[str], rng: random.Random | None = None) -> list[str]:
    """
    Fisher-Yates shuffle.

    Returns a new list; the input is not modified. Every permutation is
    equally likely given a uniform rng.
    """
    rand = rng or _default_rng
    result = list(cards)
    for i in range(len(result) - 1, 0, -1):
        j = rand.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def deal_cards(deck: Sequence[str], count: int) -> tuple[list[str], list[str]]:
    """Deal up to `count` cards off the top. Returns (dealt, remaining)."""
    actual = max(0, min(count, len(deck)))
    return list(deck[:actual]), list(deck[actual:])


@dataclass(frozen=True)
class DrawResult:
    drawn: list[str]
    deck: list[str]
    discard: list[str]
    reshuffled: bool = False


def draw(
    deck: Sequence[str],
    discard: Sequence[str],
    count: int,
    rng: random.Random | None = None,
) -> DrawResult:
    """
    Draw `count` cards, reshuffling the discard pile into the deck on exhaustion.

    With an empty deck and an empty discard the draw fizzles: nothing is
    drawn and nothing changes.
    """
    drawn, remaining = deal_cards(deck, count)
    new_discard = list(discard)
    reshuffled = False

    if len(drawn) < count and new_discard:
        reshuffled = True
        more, remaining = deal_cards(shuffle(new_discard, rng), count - len(drawn))
        drawn.extend(more)
        new_discard = []

    return DrawResult(drawn=drawn, deck=remaining, discard=new_discard, reshuffled=reshuffled)


def draw_animals(state: PlayerGameState, count: int, rng: random.Random | None = None) -> list[str]:
    result = draw(state.animal_deck, state.animal_discard, count, rng)
    state.animal_hand.extend(result.drawn)
    state.animal_deck = result.deck
    state.animal_discard = result.discard
    return result.drawn


def draw_equipment(
    state: PlayerGameState, count: int, rng: random.Random | None = None
) -> list[str]:
    result = draw(state.equipment_deck, state.equipment_discard, count, rng)
    state.equipment_hand.extend(result.drawn)
    state.equipment_deck = result.deck
    state.equipment_discard = result.discard
    return result.drawn


def top_up_animals(
    state: PlayerGameState, target: int, rng: random.Random | None = None
) -> list[str]:
    """Draw animals until the hand holds `target` cards or both piles are empty."""
    needed = target - len(state.animal_hand)
    if needed <= 0:
        return []
    return draw_animals(state, needed, rng)


def rotate_sleeve(state: PlayerGameState, sleeve_id: str) -> None:
    """Move a played sleeve to used; refill available from used once it runs dry."""
    state.available_sleeves.remove(sleeve_id)
    state.used_sleeves.append(sleeve_id)
    if not state.available_sleeves:
        state.available_sleeves = state.used_sleeves
        state.used_sleeves = []


def discard_played(state: PlayerGameState, commit: CommittedCard) -> None:
    """Move the committed animal and equipment from hand to discard."""
    state.animal_hand.remove(commit.animal_id)
    state.animal_discard.append(commit.animal_id)
    for equip_id in commit.equipment_ids:
        state.equipment_hand.remove(equip_id)
        state.equipment_discard.append(equip_id)


def validate_selection(
    state: PlayerGameState,
    sleeve_id: str,
    animal_id: str,
    equipment_ids: Sequence[str],
) -> None:
    """
    Check a selection against what the player currently holds.

    Raises:
        InvalidSelectionError: A card is not available to this player
    """
    if sleeve_id not in state.available_sleeves:
        raise InvalidSelectionError(sleeve_id, "Selected sleeve is not available")
    if animal_id not in state.animal_hand:
        raise InvalidSelectionError(animal_id, "Selected animal is not in your hand")

    in_hand = Counter(state.equipment_hand)
    for equip_id, wanted in Counter(equipment_ids).items():
        if in_hand[equip_id] < wanted:
            raise InvalidSelectionError(equip_id, f"Equipment {equip_id} is not in your hand")


def deal_opening_state(
    player_id: str,
    cards: CardSnapshot,
    rules: GameRules,
    rng: random.Random | None = None,
) -> PlayerGameState:
    """Build a fresh player state: all sleeves available, shuffled decks, opening hands."""
    state = PlayerGameState(
        player_id=player_id,
        available_sleeves=[c.id for c in cards.sleeves],
        animal_deck=shuffle([c.id for c in cards.animals], rng),
        equipment_deck=shuffle([c.id for c in cards.equipment], rng),
    )
    draw_animals(state, rules.starting_animal_hand, rng)
    draw_equipment(state, rules.starting_equipment_hand, rng)
    return state
