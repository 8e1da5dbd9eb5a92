"""
Data Models
==========

Pydantic models shared by the installer and the CLI.
"""
