"""Tests for the main pipeline and the command line interface."""

import logging
from collections.abc import Callable
from pathlib import Path

import cv2
import numpy as np
import pymupdf
import pytest
from click.testing import CliRunner

from conftest import PAGE_HEIGHT, PAGE_WIDTH
from pagenotes.config import RunConfig
from pagenotes.main import click_pipeline, start_pipeline
from pagenotes.rendering.renderer import PymupdfRenderer
from pagenotes.results import ErrorKind


class FlakyRenderer(PymupdfRenderer):
    """Renderer that fails on some pages."""

    def __init__(self, failing_pages: set[int]):
        super().__init__(dpi=72)
        self.failing_pages = failing_pages
        self.closed = 0

    def render(self, document: pymupdf.Document, page_index: int) -> np.ndarray:  # noqa: D102
        if page_index in self.failing_pages:
            raise RuntimeError("cannot render page")
        return super().render(document, page_index)

    def close(self, document: pymupdf.Document) -> None:  # noqa: D102
        self.closed += 1
        super().close(document)


class FailingStamper:
    """A NoteStamper that always fails."""

    def draw_text(self, bitmap: np.ndarray, x: int, y: int, text: str, size: float) -> np.ndarray:  # noqa: D102
        raise OSError("malformed font")


def read_png(path: Path) -> np.ndarray:
    """Decode a PNG file to RGBA."""
    return cv2.cvtColor(cv2.imread(str(path), cv2.IMREAD_UNCHANGED), cv2.COLOR_BGRA2RGBA)


def rendered_pages(path: Path, dpi: int = 72) -> list[np.ndarray]:
    """Render all pages of a PDF the way the pipeline does."""
    renderer = PymupdfRenderer(dpi=dpi)
    document = renderer.open(path)
    try:
        return [renderer.render(document, index) for index in range(renderer.page_count(document))]
    finally:
        renderer.close(document)


def run(src_dir: Path, dst_dir: Path, **options):
    """Run the pipeline at 72 dpi."""
    config = RunConfig(src_dir=src_dir, dst_dir=dst_dir, render_dpi=72, **options)
    return start_pipeline(config)


def test_scenario_note_with_space(
    src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path], caplog: pytest.LogCaptureFixture
):
    """a.pdf gets two stamped pages that are 150 px taller, notes.txt is skipped, no PDF is reassembled."""
    caplog.set_level(logging.INFO)
    pdf_factory("a.pdf", page_count=2)
    (src_dir / "notes.txt").write_text("not a pdf")

    report = run(src_dir, dst_dir, note="DRAFT", add_note_space=True, fontsize=100)

    assert report.exit_code == 0
    assert report.files_processed == 1
    assert report.files_skipped == 1
    assert report.pages_written == 2
    assert "[1] Skipping notes.txt: not a PDF file" in caplog.text

    output_directory = dst_dir / "a.pdf"
    assert sorted(path.name for path in output_directory.iterdir()) == ["a_0.png", "a_1.png"]
    for index in range(2):
        image = read_png(output_directory / f"a_{index}.png")
        assert image.shape == (PAGE_HEIGHT + 150, PAGE_WIDTH, 4)
        assert (image[PAGE_HEIGHT - 125 : PAGE_HEIGHT + 50, :, :3] < 64).any(), "The note is stamped"
    assert not (dst_dir / "notes.txt").exists()


def test_no_note_writes_rendered_pages(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """Without a note every page is written exactly as rendered."""
    path = pdf_factory("report.pdf", page_count=3)

    report = run(src_dir, dst_dir)

    output_directory = dst_dir / "report.pdf"
    assert sorted(p.name for p in output_directory.iterdir()) == ["report_0.png", "report_1.png", "report_2.png"]
    for index, expected in enumerate(rendered_pages(path)):
        assert np.array_equal(read_png(output_directory / f"report_{index}.png"), expected)
    assert report.pages_written == 3
    assert report.errors == []


def test_note_without_space_keeps_dimensions(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """Stamped pages keep the size of the rendered page when no space is added."""
    path = pdf_factory("a.pdf", page_count=2)

    run(src_dir, dst_dir, note="DRAFT", fontsize=50)

    for index, rendered in enumerate(rendered_pages(path)):
        image = read_png(dst_dir / "a.pdf" / f"a_{index}.png")
        assert image.shape == rendered.shape
        assert not np.array_equal(image, rendered), "The note is drawn over the page"


def test_back_to_pdf(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """The reassembled PDF has one page per stamped image, sized to the image."""
    pdf_factory("a.pdf", page_count=2)

    report = run(src_dir, dst_dir, note="DRAFT", fontsize=40, add_note_space=True, back_to_pdf=True)

    assert report.pdfs_written == 1
    with pymupdf.open(dst_dir / "a.pdf" / "a_with_note.pdf") as doc:
        assert doc.page_count == 2
        for page in doc:
            assert page.rect == pymupdf.Rect(0, 0, PAGE_WIDTH, PAGE_HEIGHT + 60)


def test_back_to_pdf_without_note(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """Without a note no PDF is reassembled and no error is reported."""
    pdf_factory("a.pdf", page_count=1)

    report = run(src_dir, dst_dir, back_to_pdf=True)

    assert not (dst_dir / "a.pdf" / "a_with_note.pdf").exists()
    assert report.pdfs_written == 0
    assert report.errors == []
    assert report.exit_code == 0


def test_render_failure_skips_page_only(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """A page that cannot be rendered is skipped, the others are written and reassembled."""
    pdf_factory("a.pdf", page_count=3)
    renderer = FlakyRenderer(failing_pages={1})
    config = RunConfig(src_dir=src_dir, dst_dir=dst_dir, note="DRAFT", fontsize=40, back_to_pdf=True, render_dpi=72)

    report = start_pipeline(config, renderer=renderer)

    assert sorted(p.name for p in (dst_dir / "a.pdf").glob("*.png")) == ["a_0.png", "a_2.png"]
    assert [error.kind for error in report.errors] == [ErrorKind.RENDER_FAILED]
    assert report.errors[0].page_index == 1
    assert renderer.closed == 1, "The document is closed after processing"
    with pymupdf.open(dst_dir / "a.pdf" / "a_with_note.pdf") as doc:
        assert doc.page_count == 2


def test_stamp_failure_falls_back_to_unmodified_page(
    src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path], caplog: pytest.LogCaptureFixture
):
    """When the note cannot be drawn the rendered page is written and left out of the reassembled PDF."""
    path = pdf_factory("a.pdf", page_count=2)
    config = RunConfig(
        src_dir=src_dir, dst_dir=dst_dir, note="DRAFT", add_note_space=True, back_to_pdf=True, render_dpi=72
    )

    report = start_pipeline(config, stamper=FailingStamper())

    for index, rendered in enumerate(rendered_pages(path)):
        assert np.array_equal(read_png(dst_dir / "a.pdf" / f"a_{index}.png"), rendered)
    assert [error.kind for error in report.errors] == [ErrorKind.STAMP_FAILED] * 2
    assert "Saving without additions..." in caplog.text
    assert not (dst_dir / "a.pdf" / "a_with_note.pdf").exists()
    assert report.exit_code == 0


def test_pdf_write_failure_moves_on_to_next_file(
    src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path], caplog: pytest.LogCaptureFixture
):
    """When the reassembled PDF cannot be written the failure is logged and the next file is processed."""
    pdf_factory("a.pdf", page_count=2)
    pdf_factory("b.pdf", page_count=2)
    (dst_dir / "a.pdf" / "a_with_note.pdf").mkdir(parents=True)

    report = run(src_dir, dst_dir, note="DRAFT", fontsize=40, back_to_pdf=True)

    assert [error.kind for error in report.errors] == [ErrorKind.PDF_WRITE_FAILED]
    assert report.errors[0].filename == "a.pdf"
    assert "Could not convert a.pdf's pages back to pdf with a note" in caplog.text
    assert (dst_dir / "a.pdf" / "a_0.png").exists()
    assert (dst_dir / "a.pdf" / "a_1.png").exists()
    assert sorted(p.name for p in (dst_dir / "b.pdf").iterdir()) == ["b_0.png", "b_1.png", "b_with_note.pdf"]
    assert report.files_processed == 2
    assert report.files_skipped == 0
    assert report.pdfs_written == 1
    assert report.exit_code == 0


def test_infinite_fontsize_falls_back_per_page(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """An infinite font size makes stamping fail page by page, every file is still written."""
    a_path = pdf_factory("a.pdf", page_count=1)
    pdf_factory("b.pdf", page_count=1)

    report = run(src_dir, dst_dir, note="DRAFT", fontsize=float("inf"), add_note_space=True, back_to_pdf=True)

    assert [error.kind for error in report.errors] == [ErrorKind.STAMP_FAILED] * 2
    assert np.array_equal(read_png(dst_dir / "a.pdf" / "a_0.png"), rendered_pages(a_path)[0])
    assert (dst_dir / "b.pdf" / "b_0.png").exists()
    assert not (dst_dir / "a.pdf" / "a_with_note.pdf").exists()
    assert report.exit_code == 0


def test_unreadable_pdf_is_skipped(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """A file that cannot be opened is skipped and the next file is processed."""
    (src_dir / "broken.pdf").write_bytes(b"")
    pdf_factory("good.pdf", page_count=1)

    report = run(src_dir, dst_dir)

    assert not (dst_dir / "broken.pdf").exists()
    assert (dst_dir / "good.pdf" / "good_0.png").exists()
    assert [error.kind for error in report.errors] == [ErrorKind.OPEN_FAILED]
    assert report.exit_code == 0


def test_directories_are_skipped(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """A directory is not processed even if its name ends in `.pdf`."""
    (src_dir / "folder.pdf").mkdir()
    pdf_factory("a.pdf", page_count=1)

    report = run(src_dir, dst_dir)

    assert not (dst_dir / "folder.pdf").exists()
    assert report.files_skipped == 1
    assert report.files_processed == 1


def test_output_directory_failure_skips_file(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """When the per-document directory cannot be created the file is skipped."""
    pdf_factory("a.pdf", page_count=1)
    pdf_factory("b.pdf", page_count=1)
    dst_dir.mkdir()
    (dst_dir / "a.pdf").write_text("in the way")

    report = run(src_dir, dst_dir)

    assert [error.kind for error in report.errors] == [ErrorKind.OUTPUT_DIRECTORY_FAILED]
    assert (dst_dir / "b.pdf" / "b_0.png").exists()
    assert report.exit_code == 0


def test_destination_not_creatable(src_dir: Path, tmp_path: Path):
    """The run aborts when the destination root cannot be created."""
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")

    report = run(src_dir, blocker / "output")

    assert report.exit_code == 1
    assert report.aborted.kind is ErrorKind.DESTINATION_UNAVAILABLE


def test_missing_source_directory(tmp_path: Path, dst_dir: Path):
    """The run aborts when the source directory cannot be listed."""
    report = run(tmp_path / "missing", dst_dir)
    assert report.exit_code == 1
    assert report.aborted.kind is ErrorKind.LISTING_FAILED


def test_runs_are_reproducible(src_dir: Path, tmp_path: Path, pdf_factory: Callable[..., Path]):
    """Two runs over the same input produce byte-identical images."""
    pdf_factory("a.pdf", page_count=2)

    run(src_dir, tmp_path / "first", note="DRAFT", fontsize=40)
    run(src_dir, tmp_path / "second", note="DRAFT", fontsize=40)

    for index in range(2):
        first = (tmp_path / "first" / "a.pdf" / f"a_{index}.png").read_bytes()
        second = (tmp_path / "second" / "a.pdf" / f"a_{index}.png").read_bytes()
        assert first == second


def test_cli(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """The command line tool stamps the pages and reports skipped entries on stdout."""
    pdf_factory("a.pdf", page_count=1, width=72, height=72)
    (src_dir / "notes.txt").write_text("not a pdf")

    result = CliRunner().invoke(
        click_pipeline,
        [
            "--src_dir",
            str(src_dir),
            "--dst_dir",
            str(dst_dir),
            "--note",
            "DRAFT",
            "--fontsize",
            "20",
            "--add_note_space",
            "--back_to_pdf",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Skipping notes.txt: not a PDF file" in result.output
    image = read_png(dst_dir / "a.pdf" / "a_0.png")
    assert image.shape == (300 + 30, 300, 4), "72 pt rendered at 300 dpi, plus the note space"
    assert (dst_dir / "a.pdf" / "a_with_note.pdf").exists()


def test_cli_dash_options(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """Dash spelled options are accepted as well."""
    pdf_factory("a.pdf", page_count=1, width=72, height=72)

    result = CliRunner().invoke(click_pipeline, ["--src-dir", str(src_dir), "--dst-dir", str(dst_dir)])

    assert result.exit_code == 0, result.output
    assert (dst_dir / "a.pdf" / "a_0.png").exists()


def test_cli_missing_source_directory(tmp_path: Path, dst_dir: Path):
    """The command line tool exits with status 1 when the source directory cannot be read."""
    result = CliRunner().invoke(click_pipeline, ["-s", str(tmp_path / "missing"), "-d", str(dst_dir)])
    assert result.exit_code == 1
    assert "Could not read specified directory" in result.output


def test_cli_infinite_fontsize(src_dir: Path, dst_dir: Path, pdf_factory: Callable[..., Path]):
    """The command line tool exits with status 0 and writes every file when the font size is infinite."""
    pdf_factory("a.pdf", page_count=1, width=72, height=72)
    pdf_factory("b.pdf", page_count=1, width=72, height=72)

    result = CliRunner().invoke(
        click_pipeline, ["-s", str(src_dir), "-d", str(dst_dir), "--note", "X", "--fontsize", "inf"]
    )

    assert result.exit_code == 0, result.output
    assert "Saving without additions..." in result.output
    assert (dst_dir / "a.pdf" / "a_0.png").exists()
    assert (dst_dir / "b.pdf" / "b_0.png").exists()
