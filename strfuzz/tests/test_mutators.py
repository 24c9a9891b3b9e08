"""Tests for the mutation operators and mutator list parsing."""

from __future__ import annotations

import random

import pytest

from strfuzz.core.types import MutationType, MutatorWeight
from strfuzz.fuzzer import mutators as m
from strfuzz.fuzzer.mutators import (
    DEFAULT_WEIGHTS,
    LETTERS_AND_DIGITS,
    Mutator,
    MutatorConfigError,
    build_mutators,
    default_mutators,
    parse_mutator_spec,
)

SAMPLES = ["a", "Z", "ab", "Hello, World!", '<html a="value">...</html>', "x" * 200]


def _removed_one(original: str, mutated: str) -> bool:
    return any(original[:i] + original[i + 1:] == mutated for i in range(len(original)))


class TestLengthDeltas:
    """Each operator changes the length by its defined amount."""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_insert_ascii_symbol_adds_one(self, text: str, rng: random.Random):
        out = m.insert_ascii_symbol(text, rng)
        assert len(out) == len(text) + 1
        assert _removed_one(out, text)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_insert_letter_or_digit_adds_alnum(self, text: str, rng: random.Random):
        out = m.insert_letter_or_digit(text, rng)
        assert len(out) == len(text) + 1
        inserted = [c for i, c in enumerate(out) if out[:i] + out[i + 1:] == text]
        assert any(c in LETTERS_AND_DIGITS for c in inserted)

    def test_insert_string_adds_up_to_49(self, rng: random.Random):
        for _ in range(200):
            out = m.insert_string("seed", rng)
            assert 4 <= len(out) <= 4 + 49
            extra = set(out) - set("seed")
            assert extra <= set(LETTERS_AND_DIGITS)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_delete_char_removes_one(self, text: str, rng: random.Random):
        out = m.delete_char(text, rng)
        assert len(out) == len(text) - 1
        assert _removed_one(text, out)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_flip_bit_changes_one_bit(self, text: str, rng: random.Random):
        out = m.flip_bit(text, rng)
        assert len(out) == len(text)
        diffs = [(a, b) for a, b in zip(text, out) if a != b]
        assert len(diffs) == 1
        xor = ord(diffs[0][0]) ^ ord(diffs[0][1])
        assert xor in {1 << bit for bit in range(8)}

    @pytest.mark.parametrize("text", SAMPLES)
    def test_duplicate_doubles(self, text: str, rng: random.Random):
        assert m.duplicate(text, rng) == text + text

    @pytest.mark.parametrize("text", SAMPLES)
    def test_repeat_char_adds_adjacent_copy(self, text: str, rng: random.Random):
        out = m.repeat_char(text, rng)
        assert len(out) == len(text) + 1
        assert any(
            out == text[: i + 1] + text[i] + text[i + 1:] for i in range(len(text))
        )

    @pytest.mark.parametrize("text", SAMPLES)
    def test_replace_char_keeps_length(self, text: str, rng: random.Random):
        out = m.replace_char(text, rng)
        assert len(out) == len(text)
        diffs = [b for a, b in zip(text, out) if a != b]
        assert len(diffs) <= 1
        assert all(ord(c) < 128 for c in diffs)

    @pytest.mark.parametrize("text", SAMPLES)
    def test_switch_case_keeps_length(self, text: str, rng: random.Random):
        out = m.switch_case(text, rng)
        assert len(out) == len(text)
        assert out.lower() == text.lower()

    @pytest.mark.parametrize("text", SAMPLES)
    def test_reverse_twice_is_identity(self, text: str, rng: random.Random):
        once = m.reverse(text, rng)
        assert once == text[::-1]
        assert m.reverse(once, rng) == text


class TestOperatorDetails:
    def test_switch_case_lowercases_upper(self):
        assert m.switch_case("A", random.Random(0)) == "a"

    def test_switch_case_uppercases_lower(self):
        assert m.switch_case("a", random.Random(0)) == "A"

    def test_switch_case_leaves_digits(self):
        assert m.switch_case("7", random.Random(0)) == "7"

    def test_switch_case_keeps_single_char_expansions(self):
        assert m.switch_case("ß", random.Random(0)) == "ß"

    def test_single_char_delete_yields_empty(self, rng: random.Random):
        assert m.delete_char("q", rng) == ""

    def test_insert_offsets_cover_both_ends(self):
        rng = random.Random(99)
        results: set[int] = set()
        for _ in range(500):
            out = m.insert_letter_or_digit("--", rng)
            results.add(next(i for i, c in enumerate(out) if c != "-"))
        assert results == {0, 1, 2}

    def test_flip_bit_draw_order(self):
        # Index is drawn before the bit position.
        rng = random.Random(5)
        expected_rng = random.Random(5)
        position = expected_rng.randrange(3)
        bit = expected_rng.randrange(8)
        text = "abc"
        expected = text[:position] + chr(ord(text[position]) ^ (1 << bit)) + text[position + 1:]
        assert m.flip_bit(text, rng) == expected

    def test_insert_ascii_symbol_draw_order(self):
        # Character is drawn before the offset.
        rng = random.Random(11)
        expected_rng = random.Random(11)
        char = chr(expected_rng.randrange(128))
        offset = expected_rng.randrange(4)
        assert m.insert_ascii_symbol("abc", rng) == "abc"[:offset] + char + "abc"[offset:]


class TestEmptyInput:
    """Index-based operators are no-ops on the empty string."""

    @pytest.mark.parametrize(
        "fn", [m.delete_char, m.flip_bit, m.repeat_char, m.replace_char, m.switch_case]
    )
    def test_index_based_noop(self, fn):
        rng = random.Random(3)
        state = rng.getstate()
        assert fn("", rng) == ""
        assert rng.getstate() == state

    @pytest.mark.parametrize(
        "fn", [m.insert_ascii_symbol, m.insert_letter_or_digit]
    )
    def test_single_inserts_work(self, fn, rng: random.Random):
        assert len(fn("", rng)) == 1

    def test_duplicate_and_reverse_of_empty(self, rng: random.Random):
        assert m.duplicate("", rng) == ""
        assert m.reverse("", rng) == ""

    def test_mutator_logs_noop(self, caplog, rng: random.Random):
        mutator = Mutator(type=MutationType.DELETE_CHAR, weight=1)
        with caplog.at_level("DEBUG", logger="strfuzz.fuzzer.mutators"):
            assert mutator.mutate("", rng) == ""
        assert "delete_char" in caplog.text


class TestCatalog:
    def test_every_type_has_an_operator(self):
        assert set(m.OPERATORS) == set(MutationType)

    def test_default_weights(self):
        assert [DEFAULT_WEIGHTS[t] for t in MutationType] == [10, 5, 5, 10, 10, 5, 5, 10, 10, 1]

    def test_default_mutators_follow_catalog_order(self):
        names = [mu.name for mu in default_mutators()]
        assert names == [t.value for t in MutationType]
        assert names[0] == "insert_ascii_symbol"
        assert names[-1] == "reverse_all"

    def test_build_mutators_empty_is_default(self):
        assert [mu.weight for mu in build_mutators([])] == list(DEFAULT_WEIGHTS.values())

    def test_build_mutators_custom(self):
        built = build_mutators([MutatorWeight(type=MutationType.FLIP_BIT, weight=3)])
        assert len(built) == 1
        assert built[0].type == MutationType.FLIP_BIT
        assert built[0].weight == 3


class TestParseMutatorSpec:
    def test_parses_pairs(self):
        weights = parse_mutator_spec("insert_ascii_symbol:10,flip_bit:5")
        assert [(w.type, w.weight) for w in weights] == [
            (MutationType.INSERT_ASCII_SYMBOL, 10),
            (MutationType.FLIP_BIT, 5),
        ]

    def test_ignores_spaces(self):
        weights = parse_mutator_spec(" reverse_all : 2 , delete_char:1 ")
        assert [w.type for w in weights] == [MutationType.REVERSE, MutationType.DELETE_CHAR]

    def test_empty_spec(self):
        assert parse_mutator_spec("") == []

    @pytest.mark.parametrize(
        "spec",
        ["nope:1", "insert_ascii_symbol", "flip_bit:1:2", "flip_bit:x", "flip_bit:0", "flip_bit:-4"],
    )
    def test_rejects_bad_entries(self, spec: str):
        with pytest.raises(MutatorConfigError):
            parse_mutator_spec(spec)

    def test_unknown_name_in_message(self):
        with pytest.raises(MutatorConfigError, match="Unknown mutator: bogus"):
            parse_mutator_spec("flip_bit:1,bogus:2")

    def test_all_catalog_names_accepted(self):
        spec = ",".join(f"{t.value}:1" for t in MutationType)
        assert len(parse_mutator_spec(spec)) == len(MutationType)

