"""Worker RQ: jobs de verificación y archivado de la cadena."""
