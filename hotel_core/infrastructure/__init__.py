"""Infraestructura: pool de DB y repositorios."""
