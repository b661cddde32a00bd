"""Summary PDF rendering and attachment delivery."""
