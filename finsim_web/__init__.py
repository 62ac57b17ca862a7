"""JSON API and persistence for loan and investment scenarios."""
