"""Errors surfaced at the session API boundary."""


class PracticeError(Exception):
    """Base class for errors returned directly to the caller."""

    code = "INTERNAL"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFoundError(PracticeError):
    code = "NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionForbiddenError(PracticeError):
    code = "FORBIDDEN"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} belongs to another user")
        self.session_id = session_id


class NoActiveTopicError(PracticeError):
    code = "BAD_REQUEST"

    def __init__(self, session_id: str):
        super().__init__(f"No active topic in session {session_id}")
        self.session_id = session_id
