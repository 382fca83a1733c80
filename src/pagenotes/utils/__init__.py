"""Utility submodule.

- file_utils: Parameter files and output path naming
"""
