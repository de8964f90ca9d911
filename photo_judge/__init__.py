"""photo-judge: vision-model photo analysis for photography competitions.

Scores batches of photos against competition criteria, ranks them into
confidence tiers, selects exhibition sets, and resumes interrupted batches
from an on-disk checkpoint.
"""

__version__ = "0.1.0"
