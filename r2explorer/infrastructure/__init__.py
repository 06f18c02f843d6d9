"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (Cloudflare R2 via boto3)
- credentials: Local account file with sealed secrets

These wrappers translate between external formats and our domain models.
"""
