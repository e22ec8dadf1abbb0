"""daypath-mentor: scope-restricted daily tutoring engine."""
