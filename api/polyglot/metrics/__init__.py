"""Prometheus metrics definitions.

Usage:
    from polyglot.metrics.translation_metrics import translation_requests_total
"""
