"""
Core Module
==========

Host detection, PhantomJS lookup, installation and process supervision.

Components:
- host: Operating system and architecture detection
- process: Supervised child processes with streamed output
- locator: PhantomJS install directories and executable lookup
- runner: Running PhantomJS and reading its output
- installer: Downloading and installing PhantomJS releases
- magick: Locating and running ImageMagick's convert
"""
