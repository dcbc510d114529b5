"""Tests for history trimming."""

import random

import pytest

from clmi.models import Message, Role, ToolCall
from clmi.tokens import measure
from clmi.trimmer import trim


def _words(n: int, tag: str = "w") -> str:
    return " ".join([tag] * n)


def _alternating(count: int, tokens_each: int) -> tuple:
    return tuple(
        Message.human(_words(tokens_each, f"h{i}")) if i % 2 == 0
        else Message.assistant(_words(tokens_each, f"a{i}"))
        for i in range(count)
    )


def _random_conversation(rng: random.Random) -> tuple:
    msgs = []
    for i in range(rng.randint(1, 12)):
        msgs.append(Message.human(_words(rng.randint(0, 60))))
        if rng.random() < 0.8:
            usage = rng.choice([None, None, rng.randint(0, 400)])
            msgs.append(Message.assistant(_words(rng.randint(0, 60)), reported_token_usage=usage))
    # The controller always trims right after appending the user line
    msgs.append(Message.human(_words(rng.randint(0, 60))))
    return tuple(msgs)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_keeps_longest_fitting_suffix(self):
        conv = _alternating(6, 40)
        kept = trim(conv, 100)
        assert kept == conv[-2:]
        assert kept[0].role is Role.HUMAN
        assert measure(kept) == 80

    def test_irreducible_single_message_survives(self):
        big = Message.human(_words(500))
        assert trim([big], 100) == (big,)

    def test_empty_conversation(self):
        assert trim([], 100) == ()

    def test_everything_fits(self):
        conv = _alternating(5, 10)
        assert trim(conv, 1000) == conv

    def test_shrinks_to_human_start(self):
        conv = (
            Message.human(_words(10)),
            Message.assistant(_words(10)),
            Message.assistant(_words(10)),
            Message.human(_words(10)),
        )
        # three newest fit (30) but start on an assistant message
        assert trim(conv, 35) == conv[-1:]

    def test_reported_usage_counts_against_budget(self):
        conv = (
            Message.human("q1"),
            Message.assistant("a1", reported_token_usage=900),
            Message.human("q2"),
        )
        assert trim(conv, 1000) == conv
        assert trim(conv, 500) == conv[-1:]

    def test_input_not_modified(self):
        conv = list(_alternating(6, 40))
        before = list(conv)
        trim(conv, 100)
        assert conv == before

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            trim(_alternating(2, 1), -1)

    def test_tool_exchange_kept_whole(self):
        call = ToolCall(id="c1", name="calculator", arguments={"expression": "1+1"})
        conv = (
            Message.human(_words(50)),
            Message.assistant("", tool_calls=[call]),
            Message.tool_result("c1", "2", tool_name="calculator"),
            Message.assistant("it is 2"),
            Message.human("thanks"),
        )
        kept = trim(conv, 10)
        assert kept == conv[-1:]
        assert trim(conv, 60) == conv


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

class TestProperties:
    @pytest.mark.parametrize("seed", range(40))
    def test_fits_budget_or_single_message(self, seed):
        rng = random.Random(seed)
        conv = _random_conversation(rng)
        budget = rng.randint(0, 300)
        kept = trim(conv, budget)
        assert measure(kept) <= budget or len(kept) == 1

    @pytest.mark.parametrize("seed", range(40))
    def test_starts_on_human(self, seed):
        rng = random.Random(seed)
        kept = trim(_random_conversation(rng), rng.randint(0, 300))
        assert kept and kept[0].role is Role.HUMAN

    @pytest.mark.parametrize("seed", range(40))
    def test_idempotent(self, seed):
        rng = random.Random(seed)
        budget = rng.randint(0, 300)
        once = trim(_random_conversation(rng), budget)
        assert trim(once, budget) == once

    @pytest.mark.parametrize("seed", range(20))
    def test_result_is_suffix(self, seed):
        rng = random.Random(seed)
        conv = _random_conversation(rng)
        kept = trim(conv, rng.randint(0, 300))
        assert conv[len(conv) - len(kept):] == kept
