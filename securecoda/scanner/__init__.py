"""SecureCoda scanner package.

Provides the sensitive-data detector registry (definitions.py), the pure
pattern matcher (matcher.py), and the scan orchestrator that walks
documents → tables → rows and feeds the alert store (orchestrator.py).
"""
