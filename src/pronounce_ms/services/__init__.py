"""
pronounce-ms Services Layer.

Sits between the API layer and the audio core.

Components:
    - audio_service.py: AudioService facade wiring cache, resolver,
      preloading and proxy together
    - validators.py: Input validation functions
"""
