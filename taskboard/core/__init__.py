"""Core utilities and shared application primitives.

Modules in this package are framework-agnostic where possible: configuration,
form state and validation, permissions and pagination helpers.
"""
