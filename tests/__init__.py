"""
Test Suite
==========

Test suite matching the phantomshot/ directory structure.

Test Categories:
- unit: Unit tests for individual components
"""
