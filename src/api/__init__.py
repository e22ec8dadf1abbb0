"""HTTP boundary for daypath-mentor."""
