"""SecureCoda alert store package.

    from securecoda.store import AlertStore
"""

from securecoda.store.alert_store import AlertStore

__all__ = ["AlertStore"]
