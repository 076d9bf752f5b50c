"""dacpactool - split a generated SQL Server schema script into per-object files
and tidy generated deployment scripts for use in migrations
"""
__version__ = "1.0.0"
