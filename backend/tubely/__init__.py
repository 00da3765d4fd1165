"""
Tubely Backend Application Package

FastAPI service for a video-hosting product. It accepts thumbnail and video
uploads for existing video records, probes and classifies videos by aspect
ratio, remuxes them for fast-start playback, stores them in S3/MinIO and
hands clients short-lived presigned links on every read.

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Infrastructure (MongoDB client, bearer-token auth)
- models/: Pydantic data models
- services/: Upload pipeline, media tooling, storage and record store
- utils/: Asset keys, aspect classification, logging
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
