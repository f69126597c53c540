from http import HTTPStatus


class BaseUsageTrackerException(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ServerMisconfiguredException(BaseUsageTrackerException):
    """Exception raised when a required server-side setting is missing."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class InvalidBillingStartDateException(ServerMisconfiguredException):
    """Exception raised when the billing cycle start date cannot be parsed."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid billing start date format: {value}. Expected format: YYYY-MM-DD"
        )


class InvalidApiKeyException(BaseUsageTrackerException):
    """Exception raised when the x-api-key header is missing or wrong."""

    status_code = HTTPStatus.UNAUTHORIZED

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message)


class InvalidSyncPayloadException(BaseUsageTrackerException):
    """Exception raised when a sync request body has the wrong shape."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, error: str):
        self.error = error
        super().__init__(f"Invalid request format: {error}")


class UsageStatsQueryException(BaseUsageTrackerException):
    """Exception raised when any of the stats aggregation queries fails."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, error: Exception):
        self.error = error
        super().__init__("Failed to fetch usage statistics")
