"""Target-specific prebuilt dependency retrieval."""
