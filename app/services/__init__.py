# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   ad_service: ad CRUD, ownership checks, image lifecycle
#   comment_service: comment CRUD under an ad
#   user_service: registration, credentials, own profile and avatar
#   authorization: owner-or-admin rule and actor resolution
#   validation: pure payload and image constraints
#   images: blob save/delete/read policies shared by the above
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  They report failures only through the typed
# errors in ``app.errors``.
