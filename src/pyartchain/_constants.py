"""Internal constants shared across the library."""

BASE_URL = "http://localhost:3000/api"
USER_AGENT = "pyartchain/1"

#: Storage namespaces used by the session store.
TOKEN_NAMESPACE = "auth-token"
USER_NAMESPACE = "auth-user"

# ------------------------------------------------------------------
# Query resources
# ------------------------------------------------------------------

RESOURCE_ME = "user-me"
RESOURCE_USER = "user"
RESOURCE_ACHIEVEMENTS = "achievements"
RESOURCE_CONTESTS = "contests"
RESOURCE_CONTEST = "contest"

# ------------------------------------------------------------------
# Freshness windows (seconds)
# ------------------------------------------------------------------

ME_STALE_TIME = 5 * 60.0
CONTESTS_STALE_TIME = 2 * 60.0
CONTEST_STALE_TIME = 5 * 60.0
