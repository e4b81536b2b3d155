"""Domain layer - pure value objects and the clock abstraction."""
