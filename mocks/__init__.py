"""Local stand-ins for external dependencies."""
