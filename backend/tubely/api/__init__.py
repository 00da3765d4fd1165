"""
Tubely API Package.

Endpoints are versioned under URL prefixes such as ``/api/v1``.

Package Structure:
    - v1/: Version 1 API endpoints
        - upload.py: Thumbnail and video upload endpoints
        - videos.py: Create, list and fetch video records
        - errors.py: Shared error response model and exception mapping
"""
