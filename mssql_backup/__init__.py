"""Scheduled SQL Server backups with ZIP archiving."""

__version__ = "0.1.0"
