"""
Service layer for the receipt pipeline.

This package contains the processing loop that feeds queued files to the
extraction client, the transient notification banner, and the session
service that wires them to the receipt store.
"""
