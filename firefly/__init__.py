"""firefly: release automation driven by an ordered, undoable task graph."""

__version__ = "0.4.0"
