# backend/settings/__init__.py
"""
Settings package. Nothing is imported here; select a module explicitly:
- backend.settings.dev   (local development, tests)
- backend.settings.prod  (production)
"""
