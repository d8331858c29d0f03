"""Resource managers: logging and Redis."""
