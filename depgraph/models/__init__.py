"""Pipeline data types."""
