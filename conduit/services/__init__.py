# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   article_service  - listings, feed, CRUD and favorites for Article
#   comment_service  - add / delete / list comments on an Article
#   tag_service      - tag normalisation and the global tag vocabulary
#   user_service     - user lookups, viewer context, follows
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  None of them log; request diagnostics are
# emitted by ``conduit.middleware``.
