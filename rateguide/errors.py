class RateGuideError(Exception):
    """Base error carrying a short machine-readable code."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code


class UpstreamFetchError(RateGuideError):
    """Upstream answered with a non-2xx status after retries."""

    def __init__(self, code: str, status: int | None = None):
        super().__init__(code)
        self.status = status


class UpstreamDataError(RateGuideError):
    """Upstream payload has the wrong shape. Never retried."""


class CriteriaError(RateGuideError):
    """User criteria rejected at the boundary."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__("invalid_criteria", message)
        self.message = message
        self.field = field


class InvalidCategoryError(RateGuideError):
    """Category outside mortgages | savings | credit-cards."""

    def __init__(self, category):
        super().__init__("invalid_category", f"unsupported category: {category}")
        self.category = category
