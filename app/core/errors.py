# -----------------------------------------------------------------------------
# ERRORS
# What the posts repository can report back to its caller.
# Storage details are logged where they are caught and never carried here.
# -----------------------------------------------------------------------------


class PostsError(Exception):
    status = 500
    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFound(PostsError):
    """A single requested post does not exist."""

    status = 404
    message = "There isn't any post by this id"


class EmptyResult(PostsError):
    """A collection query matched zero rows."""

    status = 404
    message = "There are no posts"


class InternalFailure(PostsError):
    """Any storage-layer fault: connectivity, constraint violation, timeout."""

    status = 500
    message = "Something went wrong"
