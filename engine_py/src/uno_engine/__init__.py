"""House-rule Uno rules engine."""
