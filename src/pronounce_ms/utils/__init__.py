"""
Utility Modules for pronounce-ms.

    - timeit.py: Performance measurement utilities
"""
