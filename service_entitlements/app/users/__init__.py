"""
Users package.

Turns raw Keycloak user records into typed application users and finds the
caller among them.

Modules of interest:
- models: Raw directory entry and normalized user models.
- normalizer: Attribute presence checks and lenient type coercion.
- resolver: Header -> directory -> normalized user lookup.
"""
