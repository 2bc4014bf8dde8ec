"""LocalOIDC service emulators."""
