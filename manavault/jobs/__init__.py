"""Background jobs runnable as modules."""
