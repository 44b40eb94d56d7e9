"""
Scheduling and session constants.

Pure constants only; runtime overrides live in vocabcore.config.
"""
from datetime import timedelta

# Interval added to the review time for each bucket. Must be strictly
# increasing from Hard to Easy.
DEFAULT_HARD_INTERVAL: timedelta = timedelta(minutes=10)
DEFAULT_MEDIUM_INTERVAL: timedelta = timedelta(days=3)
DEFAULT_EASY_INTERVAL: timedelta = timedelta(days=14)

# Maximum number of words in a review session started from the due set.
DEFAULT_SESSION_LIMIT: int = 50

# One New word is placed after this many Hard/Medium reviews.
DEFAULT_NEW_INTERLEAVE: int = 3

# Word pairs per matching board (two cards each).
DEFAULT_PAIRS_PER_GAME: int = 6

# How long a mismatched pair stays face-up before flipping back.
DEFAULT_MISMATCH_DELAY: timedelta = timedelta(milliseconds=900)

# Attempts per persistence job before it is parked as failed.
DEFAULT_MAX_WRITE_ATTEMPTS: int = 3
