from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """A required form field is missing."""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class DuplicateUsername(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists.")


class NotFound(HTTPException):
    """Login attempted for a username that is not registered."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='username not found! <a href="/login">Retry</a>.',
        )


class InvalidCredentials(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid username or password! <a href="/login">Retry</a>.',
        )


class Unauthorized(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Unauthorized: Please log in <a href="/">here</a>.',
        )


class SessionError(HTTPException):
    """The session store could not resolve or destroy a session."""
    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")


class ServerError(HTTPException):
    """Database or unexpected failure; details stay in the server log."""
    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
