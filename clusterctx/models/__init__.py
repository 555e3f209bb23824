"""Data structures shared by the assembler, the collaborators and the renderers."""
