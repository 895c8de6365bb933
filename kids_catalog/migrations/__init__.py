"""One-time data migrations for the Kids Catalog database."""
