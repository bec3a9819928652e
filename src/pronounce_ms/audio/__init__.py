"""
Audio Lookup, Caching, Preloading and Proxying.

This package contains the core of the pronunciation service:
    - keys.py: Cache key derivation
    - cache.py: Bounded FIFO record cache
    - resolver.py: Text to audio locator resolvers
    - lookup.py: Cache-backed lookup shared by /audio and preloading
    - jobs.py: Preload job registry and background sweeper
    - preload.py: Asynchronous batch preloading
    - proxy.py: Upstream audio streaming with error translation
"""
