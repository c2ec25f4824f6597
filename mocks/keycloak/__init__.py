"""Mock Keycloak admin API."""
