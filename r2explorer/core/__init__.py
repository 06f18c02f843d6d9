"""
Core explorer logic.

This package is framework-agnostic - it doesn't import FastAPI, boto3,
or the credential file format. Storage and persistence are reached
through protocols, so the browsing logic can be tested in isolation.
"""
