"""This module encodes page bitmaps to PNG and writes them to disk."""

from pathlib import Path

import cv2
import numpy as np

from pagenotes.results import ErrorKind, StepResult

DEFAULT_PNG_COMPRESSION = 3


def encode_png(bitmap: np.ndarray, compression: int = DEFAULT_PNG_COMPRESSION) -> bytes:
    """Encode an RGBA bitmap as PNG.

    Args:
        bitmap (np.ndarray): RGBA array of shape (height, width, 4).
        compression (int, optional): PNG compression level, 0-9. Defaults to DEFAULT_PNG_COMPRESSION.

    Returns:
        bytes: The PNG byte stream.
    """
    if bitmap.ndim != 3 or bitmap.shape[2] != 4:
        raise ValueError(f"Expected an RGBA bitmap of shape (height, width, 4), got {bitmap.shape}")

    # OpenCV expects BGRA channel order
    bgra = cv2.cvtColor(bitmap, cv2.COLOR_RGBA2BGRA)
    success, encoded = cv2.imencode(".png", bgra, [int(cv2.IMWRITE_PNG_COMPRESSION), int(compression)])
    if not success:
        raise ValueError("Failed to encode image")
    return encoded.tobytes()


def write_page_png(
    bitmap: np.ndarray,
    path: Path,
    filename: str | None = None,
    page_index: int | None = None,
    compression: int = DEFAULT_PNG_COMPRESSION,
) -> StepResult[Path]:
    """Encode a page bitmap and write it to path.

    Args:
        bitmap (np.ndarray): The RGBA page bitmap.
        path (Path): Destination of the PNG file.
        filename (str | None, optional): The source file name, for diagnostics. Defaults to None.
        page_index (int | None, optional): The page index, for diagnostics. Defaults to None.
        compression (int, optional): PNG compression level, 0-9. Defaults to DEFAULT_PNG_COMPRESSION.

    Returns:
        StepResult[Path]: The path of the written file, or an ENCODE_FAILED error.
    """
    try:
        path.write_bytes(encode_png(bitmap, compression))
    except (ValueError, OSError, cv2.error) as e:
        return StepResult.failure(ErrorKind.ENCODE_FAILED, str(e), filename=filename, page_index=page_index)
    return StepResult.success(path)
