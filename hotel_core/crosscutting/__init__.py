"""Crosscutting: config, logging, errores, métricas y middleware."""
