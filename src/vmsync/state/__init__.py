"""Reactive cache layer.

This package holds the dependency graph every read endpoint is built on:
the graph engine, keyed autodispose families, the pending/data/failure
result type and the status-derived projections.
"""
