"""Map readers and the adapter turning their output into container records."""
