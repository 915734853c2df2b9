"""Authentication: JWT tokens, global user roles and request dependencies."""
