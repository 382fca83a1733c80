"""Rendering submodule.

This module rasterizes PDF pages:
- renderer: The page renderer protocol and its PyMuPDF implementation

Example usage:
    from pagenotes.rendering.renderer import PymupdfRenderer
"""
