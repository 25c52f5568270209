"""Repository and authority connectors."""
