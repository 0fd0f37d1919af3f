"""macOS EventKit and CoreLocation bindings (PyObjC, imported lazily)."""
