"""REST API package for the Judicial Clerk Assistant."""
