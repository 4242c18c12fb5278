# services/errors.py


class ExamError(Exception):
    """Base class for errors raised by the exam services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ExamError):
    status_code = 404


class InactiveExamError(ExamError):
    status_code = 409


class EmptyExamError(ExamError):
    status_code = 409


class InvalidStateError(ExamError):
    status_code = 409


class PersistenceError(ExamError):
    """Wraps any storage or network failure."""

    status_code = 503


class AuthenticationRequiredError(ExamError):
    status_code = 401


class InvalidQuestionError(ExamError):
    """A question edit would break the answer key or option bounds."""

    status_code = 422


class InvalidExamSetError(ExamError):
    """An exam set edit would leave the stored record invalid."""

    status_code = 422
