"""
Error taxonomy for pricing and project-code allocation.

All of these are ValueErrors so callers that only care about "bad input"
can catch one type. Routers map them to HTTP status codes.
"""


class InvalidInputError(ValueError):
    """Missing or unrecognized input (project type, vertical name, area...)."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class MalformedCodeError(ValueError):
    """A project or furniture code string that cannot be parsed."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.code = code


class AllocationConflictError(ValueError):
    """Another writer already holds this code. Retryable."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.code = code


class AllocationError(ValueError):
    """Allocation gave up: retries exhausted or the bucket is full."""

    def __init__(self, message: str, bucket: str = None):
        super().__init__(message)
        self.bucket = bucket
