"""Shared constants for the listing services."""

# Banner shown when a listing has not set its own card banner.
DEFAULT_BANNER = "https://api.fateslist.xyz/static/assets/prod/banner.webp"

# OAuth2 authorize URL used when a bot has no custom invite.
INVITE_URL_TEMPLATE = (
    "https://discord.com/api/oauth2/authorize?client_id={client_id}"
    "&permissions={permissions}&scope=bot%20applications.commands"
)

# Submission limits
SHORT_DESCRIPTION_MIN = 10
SHORT_DESCRIPTION_MAX = 200
LONG_DESCRIPTION_MIN = 200
PREFIX_MAX = 9
VANITY_MIN = 2
MAX_TAGS = 10
MAX_FEATURES = 5
MAX_OWNERS = 5

# Pack limits
PACK_MIN_BOTS = 2
PACK_MAX_BOTS = 7
PACK_DESCRIPTION_MIN = 10

# Appeal limits
APPEAL_MIN_LENGTH = 7
APPEAL_MAX_LENGTH = 4000
CERTIFICATION_MIN_GUILDS = 100

# Listing page sizes
INDEX_LIMIT = 12
SEARCH_BOTS_LIMIT = 6
SEARCH_SERVERS_LIMIT = 6
SEARCH_PROFILES_LIMIT = 12

# Flags an owner may toggle themselves; all others are staff-managed
OWNER_EDITABLE_FLAGS = frozenset({7, 8})
