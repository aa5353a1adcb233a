"""Business logic services. Each takes a Repository as its first argument."""
