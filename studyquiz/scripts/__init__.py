"""Command line scripts for database setup and serving the API."""
