"""SecureCoda models package.

Shared data contracts used across the scan pipeline, alert store and API:

  - document.py — Document, Table, Row (snapshots of the external source)
  - alert.py    — Alert, AlertDraft and the alert enums (type, severity, status)
  - scan.py     — Finding, ScanResult, ScanError, RemediationResult
"""
