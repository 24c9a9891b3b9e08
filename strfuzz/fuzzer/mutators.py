"""String mutation operators.

Every operator is a pure function of the input string and a shared
``random.Random``; all randomness comes from that one stream so a run is
reproducible from its seed. Operators apply exactly one edit per call.

Operators that pick an existing character (delete, flip, repeat, replace,
switch case) leave an empty string unchanged and draw nothing. Insertion
offsets are drawn from ``[0, len]`` so insertion also works on empty input.
"""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass
from typing import Callable

from strfuzz.core.types import MutationType, MutatorWeight

logger = logging.getLogger(__name__)

MutateFn = Callable[[str, random.Random], str]

ASCII_RANGE = 128
LETTERS_AND_DIGITS = string.ascii_lowercase + string.ascii_uppercase + string.digits
MAX_INSERT_LENGTH = 50


class MutatorConfigError(ValueError):
    """Raised for an invalid mutator list or weight."""


# ── Operators ────────────────────────────────────────────────────────────────


def _insert(text: str, offset: int, insertion: str) -> str:
    return text[:offset] + insertion + text[offset:]


def _random_letters(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(LETTERS_AND_DIGITS) for _ in range(length))


def insert_ascii_symbol(text: str, rng: random.Random) -> str:
    """Insert one of the 128 ASCII code points at a random offset."""
    insertion = chr(rng.randrange(ASCII_RANGE))
    offset = rng.randrange(len(text) + 1)
    return _insert(text, offset, insertion)


def insert_letter_or_digit(text: str, rng: random.Random) -> str:
    """Insert one character of ``[a-zA-Z0-9]`` at a random offset."""
    insertion = rng.choice(LETTERS_AND_DIGITS)
    offset = rng.randrange(len(text) + 1)
    return _insert(text, offset, insertion)


def insert_string(text: str, rng: random.Random) -> str:
    """Insert a 0-49 character alphanumeric string at a random offset."""
    insertion = _random_letters(rng, rng.randrange(MAX_INSERT_LENGTH))
    offset = rng.randrange(len(text) + 1)
    return _insert(text, offset, insertion)


def delete_char(text: str, rng: random.Random) -> str:
    if not text:
        return text
    position = rng.randrange(len(text))
    return text[:position] + text[position + 1:]


def flip_bit(text: str, rng: random.Random) -> str:
    """XOR one of the low 8 bits of a random character's code point."""
    if not text:
        return text
    position = rng.randrange(len(text))
    bit = rng.randrange(8)
    flipped = chr(ord(text[position]) ^ (1 << bit))
    return text[:position] + flipped + text[position + 1:]


def duplicate(text: str, rng: random.Random) -> str:
    return text + text


def repeat_char(text: str, rng: random.Random) -> str:
    """Insert a copy of a random character right after itself."""
    if not text:
        return text
    position = rng.randrange(len(text))
    return _insert(text, position + 1, text[position])


def replace_char(text: str, rng: random.Random) -> str:
    """Overwrite a random character with one of the 128 ASCII code points."""
    if not text:
        return text
    replacement = chr(rng.randrange(ASCII_RANGE))
    position = rng.randrange(len(text))
    return text[:position] + replacement + text[position + 1:]


def switch_case(text: str, rng: random.Random) -> str:
    """Lowercase an uppercase character, uppercase anything else.

    Non-letters come back unchanged but still consume the index draw.
    """
    if not text:
        return text
    position = rng.randrange(len(text))
    char = text[position]
    # Expansions like "ß".upper() == "SS" would change the length.
    switched = char.lower() if char.isupper() else char.upper()
    if len(switched) != 1:
        switched = char
    return text[:position] + switched + text[position + 1:]


def reverse(text: str, rng: random.Random) -> str:
    return text[::-1]


OPERATORS: dict[MutationType, MutateFn] = {
    MutationType.INSERT_ASCII_SYMBOL: insert_ascii_symbol,
    MutationType.INSERT_LETTER_OR_DIGIT: insert_letter_or_digit,
    MutationType.INSERT_STRING: insert_string,
    MutationType.DELETE_CHAR: delete_char,
    MutationType.FLIP_BIT: flip_bit,
    MutationType.DUPLICATE: duplicate,
    MutationType.REPEAT_CHAR: repeat_char,
    MutationType.REPLACE_CHAR: replace_char,
    MutationType.SWITCH_CASE: switch_case,
    MutationType.REVERSE: reverse,
}

DEFAULT_WEIGHTS: dict[MutationType, int] = {
    MutationType.INSERT_ASCII_SYMBOL: 10,
    MutationType.INSERT_LETTER_OR_DIGIT: 5,
    MutationType.INSERT_STRING: 5,
    MutationType.DELETE_CHAR: 10,
    MutationType.FLIP_BIT: 10,
    MutationType.DUPLICATE: 5,
    MutationType.REPEAT_CHAR: 5,
    MutationType.REPLACE_CHAR: 10,
    MutationType.SWITCH_CASE: 10,
    MutationType.REVERSE: 1,
}


# ── Mutator descriptors ──────────────────────────────────────────────────────


@dataclass
class Mutator:
    """An operator paired with its selection weight.

    ``threshold`` is the cumulative weight up to and including this
    mutator; it is assigned once by the selector.
    """

    type: MutationType
    weight: int
    threshold: int = 0

    @property
    def name(self) -> str:
        return self.type.value

    def mutate(self, text: str, rng: random.Random) -> str:
        if not text and self.type in _INDEX_BASED:
            logger.debug("%s left an empty candidate unchanged", self.name)
        return OPERATORS[self.type](text, rng)


_INDEX_BASED = frozenset({
    MutationType.DELETE_CHAR,
    MutationType.FLIP_BIT,
    MutationType.REPEAT_CHAR,
    MutationType.REPLACE_CHAR,
    MutationType.SWITCH_CASE,
})


def default_mutators() -> list[Mutator]:
    """Return the full catalog with default weights."""
    return [Mutator(type=mt, weight=w) for mt, w in DEFAULT_WEIGHTS.items()]


def build_mutators(weights: list[MutatorWeight] | None = None) -> list[Mutator]:
    """Turn configured weights into mutators; empty means the default catalog."""
    if not weights:
        return default_mutators()
    return [Mutator(type=w.type, weight=w.weight) for w in weights]


def parse_mutator_spec(spec: str) -> list[MutatorWeight]:
    """Parse ``"name:weight,name:weight"`` into validated weights.

    Spaces are ignored. Raises MutatorConfigError for an unknown name,
    a malformed pair, or a weight that is not a positive integer.
    """
    spec = spec.replace(" ", "")
    if not spec:
        return []

    weights: list[MutatorWeight] = []
    for entry in spec.split(","):
        parts = entry.split(":")
        if len(parts) != 2:
            raise MutatorConfigError(f"Malformed mutator entry: {entry!r} (expected <mutator>:<share>)")
        name, raw_weight = parts
        try:
            mutation_type = MutationType(name)
        except ValueError:
            raise MutatorConfigError(f"Unknown mutator: {name}") from None
        try:
            weight = int(raw_weight)
        except ValueError:
            raise MutatorConfigError(f"Invalid share for {name}: {raw_weight!r}") from None
        if weight <= 0:
            raise MutatorConfigError(f"Share for {name} must be positive, got {weight}")
        weights.append(MutatorWeight(type=mutation_type, weight=weight))
    return weights
