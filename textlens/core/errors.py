from typing import Optional


class AnalysisError(Exception):
    """Base for failures of a single analyze call."""

    status_code = 500
    kind = "analysis_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AnalysisError):
    status_code = 400
    kind = "validation_error"


class ConfigError(AnalysisError):
    kind = "config_error"


class UpstreamError(AnalysisError):
    kind = "upstream_error"


class UpstreamTimeout(UpstreamError):
    kind = "upstream_timeout"

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"completion service did not respond within {timeout_s:g}s")
        self.timeout_s = timeout_s


class UpstreamHTTPError(UpstreamError):
    kind = "upstream_http_error"

    def __init__(self, status: int) -> None:
        super().__init__(f"completion service returned HTTP {status}")
        self.status = status


class UpstreamConnectionError(UpstreamError):
    kind = "upstream_connection_error"


class MalformedOutput(AnalysisError):
    """The model answered, but not with a decodable result.

    ``raw_text`` is kept for diagnostics only; the message never includes it.
    """

    kind = "malformed_output"

    def __init__(self, raw_text: str, reason: Optional[str] = None) -> None:
        message = "completion output could not be decoded as an analysis result"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.raw_text = raw_text
        self.reason = reason


class StoreError(Exception):
    pass


class RecordNotFound(StoreError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"record {record_id} not found")
        self.record_id = record_id
