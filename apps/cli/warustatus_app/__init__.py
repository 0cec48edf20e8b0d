"""warustatus command-line app."""
