"""
Test Utilities
==============

Archive builders and HTTP fakes shared by the unit tests.
"""
