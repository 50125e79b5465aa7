"""Package-metadata descriptor fetchers."""
