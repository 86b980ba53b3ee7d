"""Test suite for the Judicial Clerk Assistant."""
