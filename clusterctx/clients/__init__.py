"""Real backends for the collaborators consumed by the context assembler."""
