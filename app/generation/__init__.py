"""Question allocation engine: difficulty tiers, RBT allocation and cross-paper orchestration."""
