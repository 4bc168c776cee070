"""Fetching, caching and verification of the package metadata API.

Submodules are imported directly (brewapi.api.client, brewapi.api.signature,
...); the public surface is re-exported from the brewapi package.
"""
