"""Annotations submodule.

This module contains the note stamping:
- note: Canvas extension and drawing of the note text

Example usage:
    from pagenotes.annotations.note import annotate_page
"""
