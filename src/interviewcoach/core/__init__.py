"""Domain layer: agent execution core, topic state machine and intent cascade."""
