"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Componente:
  Errores tipados del pool de conexiones

Responsabilidades:
  - Dar semántica clara al ciclo de vida del pool ("no inicializado",
    "ya inicializado", "no pude adquirir conexión").
  - Los repositorios los traducen a DatabaseError / CatalogUnavailableError.
===============================================================================
"""


class DatabasePoolError(Exception):
    """Base de errores del pool de base de datos."""


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() se llamó dos veces en el mismo proceso."""


class PoolNotInitializedError(DatabasePoolError):
    """get_pool() antes de init_pool()."""


class DatabaseConnectionError(DatabasePoolError):
    """No se pudo adquirir o validar una conexión (incluye timeout del pool)."""
