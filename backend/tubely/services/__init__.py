"""
Business logic services for the Tubely backend.

- upload_service: Thumbnail and video upload orchestration
- media_service: ffprobe geometry probing and ffmpeg fast-start remuxing
- storage_service: S3-compatible object storage and presigning
- presign_service: Read-time conversion of stored references into URLs
- asset_store: Local thumbnail storage under the public assets root
- video_store: MongoDB-backed video record store

Services are constructed once per process and injected through FastAPI's
dependency system.
"""
