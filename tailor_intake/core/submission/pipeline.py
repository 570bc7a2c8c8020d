"""
Submission pipeline: one bounded network submission, an optimistic phase
ticker for progress display, and classification of every failure.

The ticker is cosmetic. Only the network result decides success.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from tailor_intake.config import settings
from tailor_intake.core.submission.packager import SubmissionPayload
from tailor_intake.exceptions import (
    MalformedResponseError,
    OrderRejectedError,
    OrderServiceError,
)
from tailor_intake.integrations.order_service import (
    BaseOrderService,
    SubmissionReceipt,
    get_default_order_service,
)

logger = logging.getLogger(__name__)


class ProgressPhase(Enum):
    """Backend stages shown to the user, in order."""
    ORDER_DATA = "orderData"
    FILE_UPLOAD = "fileUpload"
    INVOICE_GENERATION = "pdfGeneration"
    NOTIFICATION = "whatsapp"

    @property
    def label(self) -> str:
        return PHASE_LABELS[self]


PHASE_LABELS = {
    ProgressPhase.ORDER_DATA: "Saving order details",
    ProgressPhase.FILE_UPLOAD: "Uploading images",
    ProgressPhase.INVOICE_GENERATION: "Generating invoices",
    ProgressPhase.NOTIFICATION: "Sending confirmation",
}


class PhaseStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"
    FAILED = "failed"


class SubmissionErrorKind(Enum):
    """Failure classes surfaced to the wizard."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"
    BUSINESS_VALIDATION = "business_validation"


ERROR_MESSAGES = {
    SubmissionErrorKind.TIMEOUT: (
        "The submission took too long and was cancelled. Large orders with many images "
        "may need to be split into smaller orders or submitted again."
    ),
    SubmissionErrorKind.NETWORK: (
        "Could not reach the server. Please check your internet connection and try again."
    ),
    SubmissionErrorKind.MALFORMED_RESPONSE: (
        "The server returned something unexpected. Please try again later or contact support."
    ),
}


@dataclass
class SubmissionProgress:
    """Per-phase status snapshot handed to progress listeners."""
    phases: dict[ProgressPhase, PhaseStatus] = field(
        default_factory=lambda: {phase: PhaseStatus.PENDING for phase in ProgressPhase}
    )

    @property
    def current(self) -> Optional[ProgressPhase]:
        for phase, status in self.phases.items():
            if status == PhaseStatus.ACTIVE:
                return phase
        return None

    def activate(self, phase: ProgressPhase) -> None:
        """Mark earlier phases done and `phase` active."""
        reached = False
        for p in ProgressPhase:
            if p == phase:
                self.phases[p] = PhaseStatus.ACTIVE
                reached = True
            elif not reached:
                self.phases[p] = PhaseStatus.DONE

    def complete(self) -> None:
        for p in ProgressPhase:
            self.phases[p] = PhaseStatus.DONE

    def fail(self) -> None:
        for p, status in self.phases.items():
            if status == PhaseStatus.ACTIVE:
                self.phases[p] = PhaseStatus.FAILED

    def copy(self) -> "SubmissionProgress":
        return SubmissionProgress(phases=dict(self.phases))


@dataclass
class SubmissionResult:
    """Outcome of one submission. Exactly one of receipt / error_kind is set."""
    receipt: Optional[SubmissionReceipt] = None
    error_kind: Optional[SubmissionErrorKind] = None
    message: str = ""
    status: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.receipt is not None

    @classmethod
    def failed(cls, kind: SubmissionErrorKind, message: str | None = None, status: int | None = None) -> "SubmissionResult":
        return cls(error_kind=kind, message=message or ERROR_MESSAGES[kind], status=status)


ProgressListener = Callable[[SubmissionProgress], Union[None, Awaitable[None]]]


class SubmissionPipeline:
    """Runs submissions against an order service."""

    def __init__(
        self,
        service: Optional[BaseOrderService] = None,
        timeout: Optional[float] = None,
        phase_offsets: Optional[list[float]] = None,
    ):
        self._service = service
        self.timeout = timeout if timeout is not None else settings.submission_timeout_seconds
        self.phase_offsets = list(phase_offsets if phase_offsets is not None else settings.progress_phase_offsets)

    @property
    def service(self) -> BaseOrderService:
        if self._service is None:
            self._service = get_default_order_service()
        return self._service

    async def submit(
        self,
        payload: SubmissionPayload,
        on_progress: Optional[ProgressListener] = None,
    ) -> SubmissionResult:
        """
        Submit and classify the outcome. Never raises for service failures.
        """
        progress = SubmissionProgress()
        progress.activate(ProgressPhase.ORDER_DATA)
        await self._notify(on_progress, progress)

        ticker = asyncio.create_task(self._tick(progress, on_progress))
        try:
            receipt = await asyncio.wait_for(self.service.submit_order(payload), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Order submission timed out after {self.timeout:.0f}s")
            result = SubmissionResult.failed(SubmissionErrorKind.TIMEOUT)
        except OrderRejectedError as e:
            logger.warning(f"Order rejected by service: {e.reason}")
            result = SubmissionResult.failed(SubmissionErrorKind.BUSINESS_VALIDATION, e.reason, e.status)
        except MalformedResponseError as e:
            logger.error(f"Malformed order service response (status={e.status}): {e}")
            result = SubmissionResult.failed(SubmissionErrorKind.MALFORMED_RESPONSE, status=e.status)
        except OrderServiceError as e:
            logger.warning(f"Order submission failed: {e}")
            result = SubmissionResult.failed(SubmissionErrorKind.NETWORK, status=e.status)
        except Exception as e:
            logger.error(f"Unexpected submission failure: {e}", exc_info=True)
            result = SubmissionResult.failed(SubmissionErrorKind.NETWORK)
        else:
            logger.info(f"Order accepted: {receipt.order_id}")
            result = SubmissionResult(receipt=receipt)
        finally:
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass

        if result.success:
            progress.complete()
        else:
            progress.fail()
        await self._notify(on_progress, progress)
        return result

    async def _tick(self, progress: SubmissionProgress, on_progress: Optional[ProgressListener]) -> None:
        """Advance through the later phases at fixed offsets from the start."""
        elapsed = 0.0
        for phase, offset in zip(list(ProgressPhase)[1:], self.phase_offsets):
            await asyncio.sleep(max(0.0, offset - elapsed))
            elapsed = offset
            progress.activate(phase)
            await self._notify(on_progress, progress)

    async def _notify(self, on_progress: Optional[ProgressListener], progress: SubmissionProgress) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(progress.copy())
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            # Progress display must never affect the submission outcome
            logger.debug(f"Progress listener failed: {e}")
