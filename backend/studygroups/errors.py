"""Domain exceptions raised by services and repositories.

`main` maps these to HTTP responses: `ValidationError` becomes 400 and
`NotFoundError` becomes 404.
"""


class StudyGroupError(Exception):
    """Base exception for all study group errors."""

    status_code = 500


class ValidationError(StudyGroupError):
    """Raised when a request breaks a business rule."""

    status_code = 400


class NotFoundError(StudyGroupError):
    """Raised when a referenced study group, user or membership is missing."""

    status_code = 404

    def __init__(self, entity: str, entity_id: int, message: str = None):
        """Initialize the exception.

        Args:
            entity: Kind of the missing record (e.g. ``"study group"``).
            entity_id: The id that was looked up.
            message: Optional text replacing the default description.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id} not found")
