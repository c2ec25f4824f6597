"""
Entitlements Service package for the Entitlements Bridge.

This package answers entitlement and compliance questions for callers
identified by an x-rh-identity header, using user attributes stored in
Keycloak. It provides:

- app.main: API surface for entitlements, compliance and health.
- app.identity: x-rh-identity header decoding and validation.
- app.directory: Authenticated Keycloak admin API access.
- app.users: Attribute normalization and user resolution.

Guidelines:
- The service is stateless; every request reads the directory afresh.
- Incomplete directory entries are dropped, never partially filled.
- Keep resolution deterministic and observable (metrics + logs).
"""
