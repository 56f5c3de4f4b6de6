"""
Error taxonomy for the student records service.

Every error raised by the credential provider, the connection manager, the
validator or the query layer derives from StudentRecordsError. The HTTP
layer maps each subclass to a status code in main.py; anything else is a
generic 500.
"""


class StudentRecordsError(Exception):
    """Base class for all service errors."""

    status_code = 500
    public_message = "Internal server error"


class ValidationError(StudentRecordsError):
    """
    A client payload failed the schema rules.

    Carries every violation found, not just the first one, as a list of
    {"field": <dotted path>, "message": <text>} dicts.
    """

    status_code = 400
    public_message = "Validation error"

    def __init__(self, violations: list):
        self.violations = violations
        fields = ", ".join(v["field"] for v in violations) or "<root>"
        super().__init__(f"Invalid fields: {fields}")


class InvalidStudentId(StudentRecordsError):
    """A path id is not a positive integer."""

    status_code = 400
    public_message = "Invalid student ID"

    def __init__(self, raw_id: str):
        self.raw_id = raw_id
        super().__init__(f"Invalid student ID: {raw_id!r}")


class StudentNotFound(StudentRecordsError):
    """No row matches the requested student id."""

    status_code = 404
    public_message = "Student not found"

    def __init__(self, student_id: int):
        self.student_id = student_id
        super().__init__(f"Student {student_id} not found")


class ConfigurationError(StudentRecordsError):
    """Database credentials could not be resolved."""


class DatabaseConnectionError(StudentRecordsError):
    """The connection pool could not be built."""


class NotFoundAfterWrite(StudentRecordsError):
    """An inserted row could not be read back by its assigned key."""

    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student {student_id} missing after insert")


class NoFieldsToUpdate(StudentRecordsError):
    """An update was requested with an empty change set."""

    def __init__(self):
        super().__init__("No fields to update")
