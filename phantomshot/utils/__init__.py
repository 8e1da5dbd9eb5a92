"""
Utility Functions
================

Small helpers used around PhantomJS runs.

Components:
- urls: Local path to file URL conversion on Windows
- network: Free TCP port discovery
- helpers: Collection helpers
"""
