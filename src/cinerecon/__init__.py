"""Multi-source fact reconciliation for the movie and celebrity catalog."""
