"""Capa HTTP (FastAPI): dependencies de autorización y rutas de auditoría."""
