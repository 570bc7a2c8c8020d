"""
Order submission: payload packaging and the submission pipeline.
"""

from tailor_intake.core.submission.packager import (
    SubmissionPackager,
    SubmissionPayload,
    packager,
)

__all__ = [
    "SubmissionPackager",
    "SubmissionPayload",
    "packager",
]
