# Services package init
"""
QuizAPI Backend - Services Package
===================================

What:  Long-lived, explicitly constructed services shared by all requests.

Service Inventory:
    - metrics.py:  MetricsCollector (per-route request aggregates)
    - auth.py:     bearer token issuance and decoding

The container that wires them together lives in quizapi.container.
"""
