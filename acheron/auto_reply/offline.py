"""
Offline replies for chat mode.

A small decision table, not a language model: a few substring triggers
pick either a fixed line or a random line in the current mood.
"""

import random

IDENTITY_LINE = "I am Acheron — your dark companion."
GRATITUDE_LINE = "Do not thank the darkness; it is simply here."

MOOD_LINES: dict[str, tuple[str, ...]] = {
    "calm": (
        "The void listens. Speak.",
        "Ever watchful. Ever still.",
        IDENTITY_LINE,
    ),
    "cold": (
        "Silence suits you. Speak quickly.",
        "I watch. Do not test the dark.",
        "I am Acheron. Consider this a warning.",
    ),
    "cryptic": (
        "Shadows whisper your name.",
        "The path forks; I know one route.",
        "Ask, and the void shall answer mildly.",
    ),
}

# Plain substring tests, checked in this order
GREETING_TRIGGERS = ("hello", "hi", "hey")
HOW_ARE_YOU_TRIGGERS = ("how are you", "how r you")
IDENTITY_TRIGGERS = ("who are you", "what are you")
GRATITUDE_TRIGGERS = ("thanks", "thank you")


def mood_lines(mood: str | None) -> tuple[str, ...]:
    """Stock lines for a mood; unknown moods read as calm."""
    return MOOD_LINES.get((mood or "").lower(), MOOD_LINES["calm"])


def generate_offline_reply(
    text: str | None,
    mood: str | None = "calm",
    rng: random.Random | None = None,
) -> str:
    """
    Produce a scripted reply for non-command text.

    Args:
        text: Incoming message text.
        mood: Current mood (calm, cold, cryptic).
        rng: Random source, injectable for tests.

    Returns:
        The reply line.
    """
    t = (text or "").lower()
    choose = (rng or random).choice

    if any(trigger in t for trigger in GREETING_TRIGGERS):
        return choose(mood_lines(mood))
    if any(trigger in t for trigger in HOW_ARE_YOU_TRIGGERS):
        return choose(mood_lines(mood))
    if any(trigger in t for trigger in IDENTITY_TRIGGERS):
        return IDENTITY_LINE
    if any(trigger in t for trigger in GRATITUDE_TRIGGERS):
        return GRATITUDE_LINE

    return choose(mood_lines(mood))
