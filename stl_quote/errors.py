"""
Exception hierarchy for stl_quote.

Every failure raised by the pipeline derives from QuoteError. Failures are
local to one request: they are reported to the caller and never retried.
"""

from typing import Optional


class QuoteError(Exception):
    """Base class for all stl_quote errors."""


# ---------------------------------------------------------------------------
# Input rejection (before parsing)
# ---------------------------------------------------------------------------

class InputRejectedError(QuoteError):
    """Input refused before any parsing took place."""


class EmptyInputError(InputRejectedError):
    """Zero-byte payload."""


class UnsupportedExtensionError(InputRejectedError):
    """File extension not handled by the receiving component."""

    def __init__(self, filename: str, allowed: tuple = ()):
        self.filename = filename
        self.allowed = tuple(allowed)
        message = f"Unsupported file type: {filename!r}"
        if self.allowed:
            message += f" (expected one of: {', '.join(self.allowed)})"
        super().__init__(message)


class FileTooLargeError(InputRejectedError):
    """Payload exceeds the upload size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File size {size} bytes exceeds {limit / (1024 * 1024):g}MB limit"
        )


class UnknownUploadError(InputRejectedError):
    """Storage reference does not name a stored upload."""


# ---------------------------------------------------------------------------
# Parse failures
# ---------------------------------------------------------------------------

class MeshParseError(QuoteError):
    """Mesh bytes could not be decoded.

    Attributes:
        offset: byte offset where decoding failed (binary input)
        triangle_index: index of the offending triangle, if known
        line: 1-based line number (ASCII input)
    """

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        triangle_index: Optional[int] = None,
        line: Optional[int] = None,
    ):
        self.offset = offset
        self.triangle_index = triangle_index
        self.line = line

        context = []
        if offset is not None:
            context.append(f"byte {offset}")
        if triangle_index is not None:
            context.append(f"triangle {triangle_index}")
        if line is not None:
            context.append(f"line {line}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class MalformedHeaderError(MeshParseError):
    """Header missing or unreadable."""


class TruncatedDataError(MeshParseError):
    """Input ends before all declared triangles were read."""


class MalformedDataError(MeshParseError):
    """Triangle data present but not decodable."""


class MeshFileNotFoundError(MeshParseError):
    """Mesh file does not exist."""


# ---------------------------------------------------------------------------
# Validation failures
# ---------------------------------------------------------------------------

class InputValidationError(QuoteError):
    """Pricing input rejected; `field` names the offending input."""

    field = ""

    def __init__(self, message: str, value: object = None):
        self.value = value
        super().__init__(message)


class InvalidThicknessError(InputValidationError):
    field = "thickness"


class InvalidQuantityError(InputValidationError):
    field = "quantity"


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

class AnalysisTimeoutError(QuoteError):
    """Parse + analysis did not finish in the allotted time."""

    def __init__(self, reference: str, timeout: float):
        self.reference = reference
        self.timeout = timeout
        super().__init__(
            f"Geometry analysis of {reference!r} did not finish within {timeout:g}s"
        )
