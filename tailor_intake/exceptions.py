"""
Exception types shared by the order-intake workflow.
"""

from enum import Enum


class StepValidationError(Exception):
    """A wizard step's data failed local validation. Carries field -> message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(errors.values()))
        self.errors = errors


class CommitRule(Enum):
    """Rules checked before a garment is added or updated."""
    MISSING_CATEGORY = "missing_category"
    MISSING_VARIANT = "missing_variant"
    INVALID_QUANTITY = "invalid_quantity"
    INCOMPLETE_DESIGN = "incomplete_design"
    FILE_LIMIT = "file_limit"


class GarmentCommitError(Exception):
    """The garment builder refused to commit. Builder state is unchanged."""

    def __init__(self, rule: CommitRule, message: str, design_index: int | None = None):
        super().__init__(message)
        self.rule = rule
        self.design_index = design_index


class AttachmentLimitError(GarmentCommitError):
    """An upload would push a design past its file cap."""

    def __init__(self, message: str, design_index: int | None = None):
        super().__init__(CommitRule.FILE_LIMIT, message, design_index=design_index)


class WizardStateError(Exception):
    """The requested transition is not allowed from the current step."""


class SubmissionInProgressError(WizardStateError):
    """A submission is already in flight."""


class AttachmentDecodeError(Exception):
    """An embedded raster could not be decoded into bytes."""


class OrderServiceError(Exception):
    """Base class for failures talking to the order service."""

    def __init__(self, message: str, *, status: int | None = None, raw_response_text: str | None = None):
        super().__init__(message)
        self.status = status
        self.raw_response_text = raw_response_text


class OrderServiceNetworkError(OrderServiceError):
    """Transport failure: offline, DNS, connection reset."""


class MalformedResponseError(OrderServiceError):
    """The server answered, but not with the expected structured body."""


class OrderRejectedError(OrderServiceError):
    """The server explicitly rejected the order with a reason."""

    def __init__(self, reason: str, *, status: int | None = None):
        super().__init__(reason, status=status)
        self.reason = reason


class InvoiceUnavailableError(OrderServiceError):
    """An invoice could not be fetched or generated."""
