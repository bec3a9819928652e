"""
FastAPI REST API Layer for pronounce-ms.

    - routes.py: Endpoints (/audio, /play, /preload, /cache, /health, /metrics)
    - schemas.py: Request/response Pydantic models (camelCase on the wire)
    - dependencies.py: Settings loading and AudioService injection
"""
