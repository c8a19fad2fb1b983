"""Multi-chain portfolio synchronization and progressive aggregation."""
