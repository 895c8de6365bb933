"""Kids Catalog test suite."""
