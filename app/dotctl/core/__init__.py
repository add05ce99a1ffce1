"""Core engine modules for dotctl.

Registry parsing, reconciliation, version checks, settings and status
aggregation live here.
"""
