"""Output submodule.

This module writes the results of the pipeline to disk:
- png_writer: PNG encoding of the page images
- pdf_assembler: Reassembly of the stamped page images into a PDF document
"""
