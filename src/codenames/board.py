"""
The board: 25 words plus one color layout per team.

Everything here is derived from (seed, word pool) and nothing else, so any process can rebuild the exact same board.
"""

import random
from dataclasses import dataclass
from typing import Sequence

from src.core.exceptions import TooFewWordsError
from src.core.shared_types import Color, Team

B, G, T = Color.BLACK, Color.GREEN, Color.TAN

# (team one, team two) for every tile, following the relative distribution in the rule book.
# Scattered over the board by a seeded permutation, so only the counts per pair matter to a player.
COLOR_DISTRIBUTION: tuple[tuple[Color, Color], ...] = (
    (B, G),
    (T, G),
    (T, G),
    (T, G),
    (T, G),
    (T, G),
    (G, G),
    (G, G),
    (G, G),
    (G, T),
    (G, T),
    (G, T),
    (G, T),
    (G, T),
    (G, B),
    (T, B),
    (B, B),
    (T, T),
    (T, T),
    (T, T),
    (T, T),
    (T, T),
    (T, T),
    (T, T),
    (B, T),
)

BOARD_SIZE = len(COLOR_DISTRIBUTION)

_UINT64 = 1 << 64


@dataclass(frozen=True)
class Board:
    words: tuple[str, ...]
    one_layout: tuple[Color, ...]
    two_layout: tuple[Color, ...]

    def layout_for(self, team: int) -> tuple[Color, ...]:
        """Layout as seen by team 1 or team 2."""
        if team == Team.ONE:
            return self.one_layout
        if team == Team.TWO:
            return self.two_layout
        raise ValueError(f"No layout for team {team!r}.")


def check_word_pool(words: Sequence[str]) -> None:
    """A pool must hold enough distinct words to fill the board, otherwise the draw would never finish."""
    distinct = len(set(words))
    if distinct < BOARD_SIZE:
        raise TooFewWordsError(
            f"A word list must have at least {BOARD_SIZE} words (got {distinct} distinct)."
        )


def generate_board(seed: int, words: Sequence[str]) -> Board:
    """Build the board for a seed.

    Words are drawn with replacement and duplicates rejected, so the draw sequence (and the board order)
    only depends on the seed and the pool. The layout permutation continues from the same generator.
    """
    check_word_pool(words)

    # random.Random seeds with abs() of an int: use the unsigned value so that negative seeds stay distinct
    rnd = random.Random(seed % _UINT64)

    picked: list[str] = []
    used: set[str] = set()
    while len(picked) < BOARD_SIZE:
        word = words[rnd.randrange(len(words))]
        if word not in used:
            used.add(word)
            picked.append(word)

    permutation = list(range(BOARD_SIZE))
    rnd.shuffle(permutation)

    one_layout: list[Color] = [T] * BOARD_SIZE
    two_layout: list[Color] = [T] * BOARD_SIZE
    for i, (one, two) in enumerate(COLOR_DISTRIBUTION):
        one_layout[permutation[i]] = one
        two_layout[permutation[i]] = two

    return Board(
        words=tuple(picked),
        one_layout=tuple(one_layout),
        two_layout=tuple(two_layout),
    )
