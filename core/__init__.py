"""
Core modules for the receipt parser.

This package contains:
- config: Application configuration and settings
- db: SQLite key/value storage
- exceptions: Custom exception classes
- exporters: TSV/CSV/Excel export and archival file names
- logger: Logging configuration
- queue: Ordered file queue with status tracking
- schema: Pydantic models for receipts and queue entries
- store: Persisted, user-editable receipt store
"""
