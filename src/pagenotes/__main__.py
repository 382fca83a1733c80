"""Allows running the pipeline with ``python -m pagenotes``."""

from pagenotes.main import click_pipeline

if __name__ == "__main__":
    click_pipeline()
