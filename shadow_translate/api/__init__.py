# File: shadow_translate/api/__init__.py
"""
Optional HTTP layer.

Include ``shadow_translate.api.translations.router`` in a FastAPI application
to expose locale-aware reads and translation management.
"""
