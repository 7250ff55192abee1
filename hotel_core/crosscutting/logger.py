# hotel_core/crosscutting/logger.py
"""
===============================================================================
MÓDULO: Logger estructurado (JSON) del core de autorización y auditoría
===============================================================================

Objetivo
--------
Una línea JSON por evento, con el contexto del request / job / actor y sin
secretos. Los eventos de seguridad (bypass de platform owner, violaciones de
integridad) se marcan con `category=security` para poder filtrarlos.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  JSONFormatter + setup_logger()

Responsabilidades:
  - Serializar LogRecord a JSON con los `extra` del caller.
  - Volcar get_context_dict() (request_id, job, actor_id, role).
  - Redactar claves sensibles (snapshots con password_hash, tokens, DSN).
  - Acotar strings y profundidad para que un snapshot gigante no rompa el log.

Colaboradores:
  - hotel_core/context.py
  - identity.authorization / application.security_alerts (security_event)

Configuración (env, se lee antes de Settings):
  - LOG_LEVEL  (default INFO)
  - LOG_FORMAT json | text (default json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

REDACTED = "***REDACTADO***"
MAX_STRING_LENGTH = 2_000
MAX_DEPTH = 5

SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "password_hash",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "api_key",
        "mfa_secret",
        "recovery_codes",
        "database_url",
        "redis_url",
    }
)

# Atributos estándar de LogRecord (no son `extra`).
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def redact(value: Any, *, key: str | None = None, depth: int = 0) -> Any:
    """Copia de `value` apta para log."""
    if key is not None and key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if depth >= MAX_DEPTH:
        return "…"
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            return value[:MAX_STRING_LENGTH] + "…"
        return value
    if isinstance(value, dict):
        return {str(k): redact(v, key=str(k), depth=depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact(v, depth=depth + 1) for v in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        from ..context import get_context_dict

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "src": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(get_context_dict())

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                payload[key] = redact(value, key=key)

        if "security_event" in payload:
            payload["category"] = "security"

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exc_message"] = str(record.exc_info[1])
            payload["exc_stack"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(name: str = "hotel-core") -> logging.Logger:
    """Logger del paquete; idempotente ante reimports."""
    log = logging.getLogger(name)
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    log.setLevel(getattr(logging, level, logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if os.getenv("LOG_FORMAT", "json").strip().lower() == "text":
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
            )
        else:
            handler.setFormatter(JSONFormatter())
        log.addHandler(handler)

    return log


logger = setup_logger()
