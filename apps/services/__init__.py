"""Domain services used by the worker jobs."""
