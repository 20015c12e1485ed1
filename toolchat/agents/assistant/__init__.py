"""General-purpose tool-using chat assistant."""
