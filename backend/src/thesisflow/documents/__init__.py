"""Document operations and the lifecycle state machine."""
