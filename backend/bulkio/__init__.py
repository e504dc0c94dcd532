"""Bulk import/export service for users, articles and comments."""
