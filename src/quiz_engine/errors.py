"""Exceptions raised by the quiz engine services."""


class QuizEngineError(Exception):
    """Base class for quiz engine errors."""


class StoreUnavailable(QuizEngineError):
    """The job/analytics database could not be reached.

    Raised instead of driver-specific SQLAlchemy errors so trigger surfaces can
    abort the invocation without guessing at partial success.
    """


class JobNotFoundError(QuizEngineError):
    """No job exists with the given id."""


class JobTransitionError(QuizEngineError):
    """A job was not in the state a transition requires."""


class PersonaNotFoundError(QuizEngineError):
    """No persona configuration exists for the given persona."""


class PersonaInUseError(QuizEngineError):
    """A persona cannot be deleted while unfinished jobs reference it."""


class ConcurrentUpdateError(QuizEngineError):
    """A persona configuration changed between read and conditional write."""


class UnauthorizedError(QuizEngineError):
    """The shared secret for a privileged operation was missing or wrong."""
