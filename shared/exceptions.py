"""RFC 9457 Problem Details exception hierarchy.

All API errors extend ProblemDetailError and are converted to
application/problem+json responses by the exception handler middleware.
"""

PROBLEM_BASE_URI = "https://api.readiness.health/problems"


class ProblemDetailError(Exception):
    def __init__(
        self,
        type_uri: str,
        title: str,
        status: int,
        detail: str,
        violations: list[dict] | None = None,
    ):
        self.type_uri = type_uri
        self.title = title
        self.status = status
        self.detail = detail
        self.violations = violations
        super().__init__(detail)


class NotFoundError(ProblemDetailError):
    def __init__(self, detail: str):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/not-found",
            title="Not Found",
            status=404,
            detail=detail,
        )


class MissingUserIdError(ProblemDetailError):
    def __init__(self):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/missing-user-id",
            title="Missing User Identifier",
            status=400,
            detail="A user identifier is required: pass 'user_id' in the body or 'uid' in the query.",
        )


class InvalidDateRangeError(ProblemDetailError):
    def __init__(self, start: str, end: str):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/invalid-date-range",
            title="Invalid Date Range",
            status=400,
            detail=f"Parameter 'start' ({start}) must not be after 'end' ({end})",
        )


class DateRangeTooLargeError(ProblemDetailError):
    def __init__(self, days: int, max_days: int):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/date-range-too-large",
            title="Date Range Too Large",
            status=400,
            detail=f"Requested range spans {days} days; at most {max_days} days are allowed",
        )


class IngestBudgetExceededError(ProblemDetailError):
    def __init__(self, budget_seconds: float, samples_processed: int):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/ingest-budget-exceeded",
            title="Ingestion Budget Exceeded",
            status=413,
            detail=(
                f"Payload normalization exceeded its {budget_seconds:g}s budget after "
                f"{samples_processed} samples. Split the export into smaller batches."
            ),
        )
        self.budget_seconds = budget_seconds
        self.samples_processed = samples_processed
