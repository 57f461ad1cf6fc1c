"""Constants for the Raindrop to Notion mirror."""

SORT_NEWEST_FIRST = "-created"

# Raindrop search operators; both take a YYYY-MM-DD date
SEARCH_LAST_UPDATE_AFTER = "lastUpdate:>{date}"
SEARCH_CREATED_AFTER = "created:>{date}"

# Pass A stop reasons reported in the run summary
STOP_NO_MORE_ITEMS = "no-more-items"
STOP_WINDOW_AND_CONSECUTIVE = "time-window-and-consecutive-existing"
STOP_SHORT_FINAL_PAGE = "short-final-page"
STOP_DEBUG_LIMIT = "debug-limit"
STOP_COMPLETED = "completed"

# Bounds for the caller-supplied candidate cap
LIMIT_MIN = 1
LIMIT_MAX = 500
