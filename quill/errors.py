"""Error taxonomy shared by the pipeline and the HTTP layer."""

from __future__ import annotations


class QuillError(Exception):
    """Base class for every failure the pipeline reports to a caller."""

    status_code: int = 500


# --- Input shape ---


class InputShapeError(QuillError):
    status_code = 400


class UnknownRequestType(InputShapeError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid generation type: {value!r}")
        self.value = value


class MissingField(InputShapeError):
    def __init__(self, field: str, request_type: str) -> None:
        super().__init__(f"{field} is required for {request_type} requests")
        self.field = field


class UnknownModel(InputShapeError):
    def __init__(self, model: str) -> None:
        super().__init__(f"Unsupported AI model: {model!r}")
        self.model = model


# --- Normalization ---


class NormalizationError(QuillError):
    """A declared-text upload could not be decoded."""

    status_code = 422

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"Could not read {filename}: {reason}")
        self.filename = filename


# --- Inference boundary ---


class BoundaryError(QuillError):
    """The inference provider call failed. The message is shown verbatim."""

    status_code = 502
    kind: str = "boundary-error"


class BoundaryUnreachable(BoundaryError):
    kind = "boundary-unreachable"


class BoundaryRejected(BoundaryError):
    kind = "boundary-rejected"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedResponse(BoundaryError):
    kind = "malformed-response"
