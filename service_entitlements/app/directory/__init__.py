"""
Directory package.

Talks to the Keycloak admin API on behalf of the Entitlements Service.

Modules of interest:
- auth: httpx auth flow that obtains and attaches admin bearer tokens.
- client: Single-page user listing with a hard entry cap and deadline.
"""
