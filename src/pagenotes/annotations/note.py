"""This module contains functionalities to stamp a note at the bottom of a rendered page."""

import math
from typing import Protocol

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from pagenotes.results import ErrorKind, StepResult
from pagenotes.utils.file_utils import read_params

WHITE = 255


class NoteStamper(Protocol):
    """Draws text onto a bitmap."""

    def draw_text(self, bitmap: np.ndarray, x: int, y: int, text: str, size: float) -> np.ndarray:
        """Draw text onto an RGBA bitmap.

        Args:
            bitmap (np.ndarray): The RGBA bitmap to draw on.
            x (int): Horizontal origin of the text.
            y (int): Top of the text line. The baseline lies one ascent below.
            text (str): The text to draw.
            size (float): The font size in points.

        Returns:
            np.ndarray: The bitmap with the text drawn on it.
        """
        ...


class FontNoteStamper:
    """NoteStamper that uses the default typeface embedded in Pillow."""

    def __init__(self, color: tuple[int, int, int, int] | None = None, font_dpi: int | None = None):
        """Creates a stamper.

        Args:
            color (tuple[int, int, int, int] | None, optional): RGBA text color. Defaults to the params file.
            font_dpi (int | None, optional): Resolution used to convert points to pixels. Defaults to the params file.
        """
        note_params = read_params("pipeline_params.yml")["note"]
        self.color = tuple(color if color is not None else note_params["color"])
        self.font_dpi = font_dpi if font_dpi is not None else note_params["font_dpi"]

    def load_font(self, size: float) -> ImageFont.FreeTypeFont:
        """Load the embedded typeface at the given point size.

        Args:
            size (float): The font size in points.

        Returns:
            ImageFont.FreeTypeFont: The scalable font.
        """
        if size <= 0:
            raise ValueError(f"font size must be greater than 0, not {size}")
        font = ImageFont.load_default(size=size * self.font_dpi / 72)
        if not isinstance(font, ImageFont.FreeTypeFont):
            raise RuntimeError("Pillow was built without FreeType support, the note font cannot be scaled")
        return font

    def ascent_offset(self, size: float) -> int:
        """Distance between the top of the text line and its baseline, in whole pixels."""
        return int(size * self.font_dpi / 72)

    def draw_text(self, bitmap: np.ndarray, x: int, y: int, text: str, size: float) -> np.ndarray:  # noqa: D102
        font = self.load_font(size)
        image = Image.fromarray(bitmap)
        draw = ImageDraw.Draw(image)
        # anchor "ls": x is the left edge, y the baseline. Pillow clips to the image bounds.
        draw.text((x, y + self.ascent_offset(size)), text, fill=self.color, font=font, anchor="ls")
        return np.array(image)


def note_space(fontsize: float) -> int:
    """Height of the white band added below the page to make room for the note."""
    return int(fontsize) + int(fontsize / 2)


def note_top(source_height: int, fontsize: float) -> int:
    """Vertical position of the note, measured from the top of the page."""
    return source_height - int(fontsize + fontsize / 4)


def note_canvas(source: np.ndarray, fontsize: float, add_note_space: bool) -> np.ndarray:
    """Copy the source bitmap onto the canvas the note is drawn on.

    With add_note_space the canvas is taller than the source by `note_space(fontsize)` and the extra rows are white.
    Otherwise it has the size of the source, and the note will overlap the bottom of the page.

    Args:
        source (np.ndarray): The rendered RGBA page.
        fontsize (float): The note font size.
        add_note_space (bool): Whether to extend the canvas below the page.

    Returns:
        np.ndarray: The new canvas.
    """
    height, width = source.shape[:2]
    if not add_note_space:
        return source.copy()

    canvas = np.full((height + note_space(fontsize), width, source.shape[2]), WHITE, dtype=np.uint8)
    canvas[:height, :width] = source
    return canvas


def annotate_page(
    source: np.ndarray,
    note: str,
    fontsize: float,
    add_note_space: bool,
    stamper: NoteStamper,
    filename: str | None = None,
    page_index: int | None = None,
) -> StepResult[np.ndarray]:
    """Stamp the note onto a rendered page.

    The source bitmap is never modified. An empty note returns the source as is.

    Args:
        source (np.ndarray): The rendered RGBA page.
        note (str): The note text.
        fontsize (float): The note font size in points.
        add_note_space (bool): Whether to extend the canvas so the note does not cover the page.
        stamper (NoteStamper): Draws the text.
        filename (str | None, optional): The source file name, for diagnostics. Defaults to None.
        page_index (int | None, optional): The page index, for diagnostics. Defaults to None.

    Returns:
        StepResult[np.ndarray]: The stamped bitmap, or a STAMP_FAILED error.
    """
    if not note:
        return StepResult.success(source)

    try:
        if not math.isfinite(fontsize):
            raise ValueError(f"font size must be a finite number, not {fontsize}")
        canvas = note_canvas(source, fontsize, add_note_space)
        stamped = stamper.draw_text(canvas, 0, note_top(source.shape[0], fontsize), note, fontsize)
    except (ValueError, OSError, RuntimeError, MemoryError) as e:
        return StepResult.failure(ErrorKind.STAMP_FAILED, str(e), filename=filename, page_index=page_index)
    return StepResult.success(stamped)
