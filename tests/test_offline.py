"""Tests for scripted offline replies."""

import random

import pytest

from acheron.auto_reply.offline import (
    GRATITUDE_LINE,
    IDENTITY_LINE,
    MOOD_LINES,
    generate_offline_reply,
    mood_lines,
)


class TestMoodLines:
    """Tests for the mood tables."""

    def test_each_mood_has_three_lines(self):
        assert set(MOOD_LINES) == {"calm", "cold", "cryptic"}
        assert all(len(lines) == 3 for lines in MOOD_LINES.values())

    def test_unknown_mood_is_calm(self):
        assert mood_lines("furious") == MOOD_LINES["calm"]
        assert mood_lines(None) == MOOD_LINES["calm"]

    def test_mood_is_case_insensitive(self):
        assert mood_lines("COLD") == MOOD_LINES["cold"]


class TestGenerateOfflineReply:
    """Tests for trigger handling."""

    @pytest.mark.parametrize("text", ["hey", "Hello there", "oh HI"])
    def test_greeting_uses_mood_lines(self, text):
        assert generate_offline_reply(text, "calm") in MOOD_LINES["calm"]

    def test_greeting_matches_inside_words(self):
        # "this" contains "hi"
        assert generate_offline_reply("is this on?", "cold") in MOOD_LINES["cold"]

    @pytest.mark.parametrize("text", ["how are you", "How r you today"])
    def test_how_are_you_uses_mood_lines(self, text):
        assert generate_offline_reply(text, "cryptic") in MOOD_LINES["cryptic"]

    @pytest.mark.parametrize("mood", ["calm", "cold", "cryptic"])
    def test_identity_is_fixed(self, mood):
        assert generate_offline_reply("Who are you?", mood) == IDENTITY_LINE
        assert generate_offline_reply("what are you", mood) == IDENTITY_LINE

    def test_gratitude_is_fixed(self):
        assert generate_offline_reply("thanks", "cold") == GRATITUDE_LINE
        assert generate_offline_reply("Thank you!", "cryptic") == GRATITUDE_LINE

    def test_greeting_beats_identity(self):
        assert generate_offline_reply("hey, who are you", "cold") in MOOD_LINES["cold"]

    def test_no_trigger_uses_mood_lines(self):
        assert generate_offline_reply("the weather", "cryptic") in MOOD_LINES["cryptic"]

    def test_empty_and_none(self):
        assert generate_offline_reply("", "calm") in MOOD_LINES["calm"]
        assert generate_offline_reply(None, "calm") in MOOD_LINES["calm"]

    def test_unknown_mood_falls_back_to_calm(self):
        assert generate_offline_reply("hello", "grumpy") in MOOD_LINES["calm"]

    def test_seeded_rng_is_deterministic(self):
        first = generate_offline_reply("hello", "cold", random.Random(7))
        second = generate_offline_reply("hello", "cold", random.Random(7))
        assert first == second

    def test_all_lines_reachable(self):
        rng = random.Random(0)
        seen = {generate_offline_reply("the weather", "calm", rng) for _ in range(200)}
        assert seen == set(MOOD_LINES["calm"])
