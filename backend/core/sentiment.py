"""Keyword-based news sentiment score in [-1, 1]."""

import re

POSITIVE_WORDS = (
    "bullish", "positive", "growth", "strong", "increase", "rise", "gains",
    "optimistic", "confident", "rally", "surge", "boost", "upward", "promising",
)

NEGATIVE_WORDS = (
    "bearish", "negative", "decline", "weak", "decrease", "fall", "losses",
    "pessimistic", "uncertain", "crash", "drop", "concerns", "downward", "volatile",
)

_WORD_SPLIT = re.compile(r"\s+")


def analyze_sentiment(text: str) -> float:
    """
    Score a piece of text by counting keyword hits.

    A word counts once per list if it contains any keyword of that list
    ("rallying" matches "rally"). The score is
    (positive - negative) / (positive + negative), or 0 with no hits.
    """
    positive = 0
    negative = 0

    for word in _WORD_SPLIT.split(text.lower()):
        if not word:
            continue
        if any(keyword in word for keyword in POSITIVE_WORDS):
            positive += 1
        if any(keyword in word for keyword in NEGATIVE_WORDS):
            negative += 1

    total = positive + negative
    if total == 0:
        return 0.0
    return (positive - negative) / total
