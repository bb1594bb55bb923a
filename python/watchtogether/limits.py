"""Read-only policy limits enforced by the validation layer and services."""

LIST_NAME_MIN = 1
LIST_NAME_MAX = 100
LIST_DESCRIPTION_MAX = 500

# Members excluding the owner
LIST_MEMBERS_MAX = 50

NOTES_MAX = 2000
TAGS_MAX = 20
TAG_LENGTH_MAX = 50

RATING_MIN = 1
RATING_MAX = 10

SEASON_NUMBER_MIN = 0
SEASON_NUMBER_MAX = 100

SEARCH_QUERY_MAX = 200
USER_SEARCH_LIMIT = 10

ITEMS_PAGE_DEFAULT = 50
ITEMS_PAGE_MAX = 200
