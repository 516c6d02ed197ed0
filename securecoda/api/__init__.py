"""SecureCoda HTTP API package (alerts, documents, scan trigger)."""
