"""Configuration — daemon settings and recipe manifests."""
