"""PDF page notes.

Converts every page of the PDF files found in a directory into PNG images, optionally stamps a text note at the
bottom of each image and optionally reassembles the stamped images into a new PDF document.

Instructions:
- usage: pagenotes --src_dir docs --note "DRAFT" --add_note_space
- usage: from pagenotes.main import start_pipeline

List of modules:
- config: Run configuration and parameter files
- walker: Source directory listing
- rendering: PDF page rasterization
- annotations: Note stamping
- output
    - png_writer: PNG encoding and page image paths
    - pdf_assembler: Reassembly of stamped images into a PDF
- results: Step results and error classification
- main: Command line interface and pipeline
"""
