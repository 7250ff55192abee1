"""Hotel inventory core: autorización por rol y cadena de auditoría."""
