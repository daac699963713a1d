"""miniremind: reminder trigger engine with a Discord surface."""
