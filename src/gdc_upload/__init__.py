"""Parallel uploader of sequence data files to the GDC."""

__version__ = "0.1.0"
