"""
UI Module - User-facing surfaces for Travel Buddy
=================================================

- web: FastAPI chat API
"""
