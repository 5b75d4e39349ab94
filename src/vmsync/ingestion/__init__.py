"""Ingestion layer.

Turns request/response daemon calls into the event stream that feeds the
cache graph.
"""
