"""
Infrastructure layer - external service integrations.

- storage: Object storage (Cloudflare R2 via boto3, plus an in-memory mock)

These wrappers translate between boto3 responses and the core's
ObjectStore types.
"""
