"""This module contains file and path related utility functions."""

from importlib import resources
from pathlib import Path

import yaml

PDF_SUFFIX = ".pdf"


def read_params(params_name: str) -> dict:
    """Read parameters from a yaml file shipped in the package's `params` folder.

    ```
    pagenotes
    └── params
        └── pipeline_params.yml
    ```

    Args:
        params_name (str): Name of the params yaml file.

    Returns:
        dict: The parsed parameters.
    """
    params_file = resources.files("pagenotes").joinpath(f"params/{params_name}")

    if not params_file.is_file():
        raise FileNotFoundError(f"Provided parameter file not found: {params_name}")

    try:
        return yaml.safe_load(params_file.read_text())
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML format in {params_name}: {str(e)}") from e


def is_pdf_name(filename: str) -> bool:
    """Whether the filename carries the literal (case-sensitive) `.pdf` suffix."""
    return filename.endswith(PDF_SUFFIX)


def strip_pdf_suffix(filename: str) -> str:
    """Remove a trailing `.pdf` from the filename, if present.

    Args:
        filename (str): The source file name, e.g. "report.pdf".

    Returns:
        str: The name without the suffix, e.g. "report".
    """
    return filename.removesuffix(PDF_SUFFIX)


def document_output_directory(dst_dir: Path, filename: str) -> Path:
    """The per-document output directory. It is named exactly like the source file, suffix included."""
    return dst_dir / filename


def page_image_path(output_directory: Path, filename: str, page_index: int) -> Path:
    """Path of the PNG image of one page.

    Args:
        output_directory (Path): The per-document output directory.
        filename (str): The source file name.
        page_index (int): The zero-based page index.

    Returns:
        Path: `<output_directory>/<stem>_<page_index>.png`
    """
    return output_directory / f"{strip_pdf_suffix(filename)}_{page_index}.png"


def note_pdf_path(output_directory: Path, filename: str) -> Path:
    """Path of the reassembled PDF: `<output_directory>/<stem>_with_note.pdf`."""
    return output_directory / f"{strip_pdf_suffix(filename)}_with_note.pdf"
