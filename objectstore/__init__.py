"""
objectstore - Vendor-neutral object storage abstraction.

This package provides a single storage contract implemented by:
- Local filesystem storage
- Amazon S3 and S3-compatible services (MinIO, path-style deployments)
- Google Cloud Storage
- An in-memory backend for tests and development
"""

__version__ = "1.0.0"
__author__ = "objectstore maintainers"
