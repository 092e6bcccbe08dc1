import functools
from typing import Any

from fastapi import Response

from app.core.errors import PostsError
from app.core.schemas import ResponseEnvelope


def response_handler(
    success: bool, status: int, message: str, data: Any = None
) -> ResponseEnvelope:
    return ResponseEnvelope(success=success, status=status, message=message, data=data)


def envelope_boundary(func):
    """
    Resolve a repository coroutine to exactly one envelope.

    Errors from the posts taxonomy become failure envelopes carrying their
    status and generic message; the wrapped coroutine builds the success one.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> ResponseEnvelope:
        try:
            return await func(*args, **kwargs)
        except PostsError as error:
            return response_handler(False, error.status, error.message, None)

    return wrapper


# Controllers hand the envelope back as-is, its status becomes the HTTP status
def with_status(envelope: ResponseEnvelope, response: Response) -> ResponseEnvelope:
    response.status_code = envelope.status
    return envelope
