"""Collaborator registry, promotion and legacy backfill."""
