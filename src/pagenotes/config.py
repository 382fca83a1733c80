"""Run configuration of the pipeline."""

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pagenotes.utils.file_utils import read_params

logger = logging.getLogger(__name__)

DEFAULT_SRC_DIR = Path(".")
DEFAULT_DST_DIR = Path("output")
DEFAULT_FONTSIZE = 150.0


def default_render_dpi() -> int:
    """The rasterization resolution configured in `pipeline_params.yml`."""
    return int(read_params("pipeline_params.yml")["render"]["dpi"])


def default_png_compression() -> int:
    """The PNG compression level configured in `pipeline_params.yml`."""
    return int(read_params("pipeline_params.yml")["png"]["compression"])


class RunConfig(BaseModel):
    """Immutable configuration of one pipeline run.

    Built once from the command line options and passed explicitly to every component.

    Note: the font size is not range checked. Zero, negative or non-finite values are handed to the note stamper, which rejects
    them; the affected pages are then written without a note.
    """

    model_config = ConfigDict(frozen=True)

    src_dir: Path = DEFAULT_SRC_DIR
    dst_dir: Path = DEFAULT_DST_DIR
    note: str = ""
    fontsize: float = DEFAULT_FONTSIZE
    add_note_space: bool = False
    back_to_pdf: bool = False
    render_dpi: int = Field(default_factory=default_render_dpi, gt=0)
    png_compression: int = Field(default_factory=default_png_compression, ge=0, le=9)

    @model_validator(mode="before")
    @classmethod
    def disable_back_to_pdf_without_note(cls, data: Any) -> Any:
        """Without a note there is nothing new to embed, so the reassembled PDF is switched off."""
        if isinstance(data, dict) and not data.get("note") and data.get("back_to_pdf"):
            logger.info("No note was specified. No need to convert back to PDF!")
            data = {**data, "back_to_pdf": False}
        return data

    @property
    def has_note(self) -> bool:
        """Whether pages get a note stamped on them."""
        return self.note != ""

    @property
    def assemble_pdf(self) -> bool:
        """Whether the stamped pages are reassembled into a PDF per source document."""
        return self.has_note and self.back_to_pdf
