"""Pipeline error taxonomy.

Services raise these; the app-level error handler turns them into
``{"error": message}`` JSON with the matching status code. They subclass
ValueError so callers that only care about "bad input" can keep catching
that.
"""


class PipelineError(ValueError):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PipelineError):
    """Missing or malformed input, rejected before any write."""


class InvalidStageError(PipelineError):
    """Stage is missing, unknown, or has no task template."""


class CommentRequiredError(PipelineError):
    status_code = 422

    def __init__(self, message="Please add a comment before completing the task"):
        super().__init__(message)


class TerminalStageError(PipelineError):
    status_code = 409


class InvalidTransitionError(PipelineError):
    status_code = 409


class ConflictError(PipelineError):
    status_code = 409


class NotFoundError(PipelineError, LookupError):
    status_code = 404


class ForbiddenError(PipelineError):
    status_code = 403
