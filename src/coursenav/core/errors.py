"""Error types raised by the core components."""


class CoursenavError(Exception):
    """Base class for coursenav errors."""


class NotFoundError(CoursenavError, LookupError):
    """Requested identifier is absent from the supplied collection."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class PageNotFoundError(NotFoundError):
    """Page identifier is not part of the page collection."""

    def __init__(self, page_id: str) -> None:
        super().__init__("Page", page_id)


class CourseNotFoundError(NotFoundError):
    """Course identifier is not part of the page collection."""

    def __init__(self, course_id: str) -> None:
        super().__init__("Course", course_id)


class ForeignReferenceError(CoursenavError):
    """An ordering edit references an identifier outside the stated course."""

    def __init__(self, kind: str, identifier: str, course_id: str) -> None:
        super().__init__(f"{kind} {identifier} does not belong to course {course_id}")
        self.kind = kind
        self.identifier = identifier
        self.course_id = course_id


class RevisionConflictError(CoursenavError):
    """Content index changed since the caller read it."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Revision mismatch: expected {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class ContentIndexError(CoursenavError, ValueError):
    """Content index file is malformed."""
