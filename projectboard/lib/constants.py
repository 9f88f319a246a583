"""Shared constants for ProjectBoard."""

# Canonical board columns, seeded at init as (name, order) rows
BACKLOG = "Backlog"
TODO = "To Do"
DOING = "Doing"
REVIEW = "Review"
DONE = "Done"

DEFAULT_COLUMNS = [
    (BACKLOG, 0),
    (TODO, 1),
    (DOING, 2),
    (REVIEW, 3),
    (DONE, 4),
]

# Branch naming
BRANCH_PREFIX = "feature"
BRANCH_SLUG_MAX_LEN = 40
EMPTY_SLUG = "task"

# Exit codes
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130
