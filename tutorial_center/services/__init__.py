# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   article_service   — article CRUD, listings, search, reads, likes, bookmarks
#   approval_service  — publication status of an article
#   comment_service   — append-only comment creation for Article
#   tag_service       — cached lookup of article categories
#   user_service      — user profiles, soft delete, roles, read history
#
# All service functions accept an AsyncSession as their first argument
# so that the host controls the transaction boundary via the ``get_db``
# dependency.
