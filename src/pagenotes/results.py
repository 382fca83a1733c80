"""Step results and the classification of pipeline errors.

Every step that talks to an external library (listing, opening, rendering, stamping, encoding, saving) returns a
`StepResult`. The pipeline looks only at the `Scope` of a failed step to decide whether to move on to the next page,
move on to the next file, or abort the run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Scope(Enum):
    """How much of the run a failure takes down."""

    PAGE = "page"
    FILE = "file"
    RUN = "run"


class ErrorKind(Enum):
    """All the failures the pipeline knows about."""

    DESTINATION_UNAVAILABLE = "destination_unavailable"
    LISTING_FAILED = "listing_failed"
    NOT_A_PDF = "not_a_pdf"
    OPEN_FAILED = "open_failed"
    OUTPUT_DIRECTORY_FAILED = "output_directory_failed"
    RENDER_FAILED = "render_failed"
    STAMP_FAILED = "stamp_failed"
    ENCODE_FAILED = "encode_failed"
    PDF_PAGE_FAILED = "pdf_page_failed"
    PDF_WRITE_FAILED = "pdf_write_failed"

    @property
    def scope(self) -> Scope:
        """The scope of this kind of failure."""
        return _SCOPES[self]


_SCOPES = {
    ErrorKind.DESTINATION_UNAVAILABLE: Scope.RUN,
    ErrorKind.LISTING_FAILED: Scope.RUN,
    ErrorKind.NOT_A_PDF: Scope.FILE,
    ErrorKind.OPEN_FAILED: Scope.FILE,
    ErrorKind.OUTPUT_DIRECTORY_FAILED: Scope.FILE,
    ErrorKind.PDF_WRITE_FAILED: Scope.FILE,
    ErrorKind.RENDER_FAILED: Scope.PAGE,
    ErrorKind.STAMP_FAILED: Scope.PAGE,
    ErrorKind.ENCODE_FAILED: Scope.PAGE,
    ErrorKind.PDF_PAGE_FAILED: Scope.PAGE,
}


@dataclass(frozen=True)
class StepError:
    """A classified failure, with enough context to correlate it with the input."""

    kind: ErrorKind
    message: str
    filename: str | None = None
    page_index: int | None = None

    @property
    def scope(self) -> Scope:
        """The scope of the failure."""
        return self.kind.scope


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Either the value produced by a step, or the error that prevented it."""

    value: T | None = None
    error: StepError | None = None

    @property
    def ok(self) -> bool:
        """Whether the step succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StepResult[T]":
        """Wrap a successful value."""
        return cls(value=value)

    @classmethod
    def failure(
        cls, kind: ErrorKind, message: str, filename: str | None = None, page_index: int | None = None
    ) -> "StepResult[T]":
        """Wrap a classified failure."""
        return cls(error=StepError(kind=kind, message=message, filename=filename, page_index=page_index))
