"""
phantomshot
===========

Locate, install and drive the PhantomJS headless browser from Python.

This package provides:
- Lookup of a PhantomJS executable on PATH and in per-user install directories
- Download and installation of PhantomJS release archives
- Supervised execution of PhantomJS scripts with streamed output
- Lookup of ImageMagick's convert for post-processing screenshots
"""

__version__ = "0.1.0"
__author__ = "phantomshot developers"
