# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single concern:
#
#   auth_service    : bearer token to User resolution
#   article_service : create / read / update / delete / like for Article
#   comment_service : append-only comment creation for Article
#   listing_service : filtered, sorted, paginated article listing
#   user_service    : registration, login and mutations for User
#   projections     : ORM rows to response dicts (read side only)
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
