"""
Identity package.

Decodes and validates the base64 JSON x-rh-identity request header.
"""
