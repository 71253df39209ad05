"""Batch delivery layer.

This package sends sealed batches to the sink with bounded retry.
"""
