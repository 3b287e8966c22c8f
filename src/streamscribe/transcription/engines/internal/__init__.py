"""Concrete engine implementations (imported lazily by the registry)."""
