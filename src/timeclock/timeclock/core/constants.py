"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
STATISTICS_BUCKET_LIMIT = 30

# Efficiency differences below this many percentage points rank as ties.
RANKING_TIE_THRESHOLD = 1.0

AUTO_END_BREAK_NOTE = "Automatically ended on clock-out"
