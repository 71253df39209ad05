"""Dump ingestion pipeline.

This package turns a compressed byte stream into validated, batched
records and coordinates their delivery.
"""
