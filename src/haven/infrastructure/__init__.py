"""
HAVEN Infrastructure Layer

External integrations: persistence (in-memory and SQL), event
broadcasting, guidance text providers, and Prometheus metrics.
All infrastructure components implement abstract interfaces for testability.
"""
