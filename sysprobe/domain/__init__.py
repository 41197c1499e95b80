"""Domain models and errors, free of any I/O."""
