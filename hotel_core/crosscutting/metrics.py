"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) del core de autorización y auditoría

Responsabilidades:
    - Definir métricas Prometheus en un registry propio.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO user_id, NO hotel_id, NO entry ids).
    - Exponer helpers para generar la respuesta /metrics.

Colaboradores:
    - crosscutting.middleware: latencia y conteo HTTP.
    - identity.authorization: decisiones, bypass de plataforma, fallas de catálogo.
    - application.*: appends, hallazgos de integridad, archivados.
    - infrastructure/db/instrumentation: duración de queries.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

_requests_total: Counter | None = None
_request_latency: Histogram | None = None

_authz_decisions_total: Counter | None = None
_authz_catalog_failures_total: Counter | None = None
_authz_platform_bypass_total: Counter | None = None
_permission_cache_total: Counter | None = None

_audit_appends_total: Counter | None = None
_audit_append_latency: Histogram | None = None
_audit_chain_errors_total: Counter | None = None
_audit_verifications_total: Counter | None = None
_audit_archived_total: Counter | None = None

_db_query_duration: Histogram | None = None


def _init_metrics() -> None:
    """Inicializa métricas (una sola vez)."""
    global _requests_total, _request_latency
    global _authz_decisions_total, _authz_catalog_failures_total
    global _authz_platform_bypass_total, _permission_cache_total
    global _audit_appends_total, _audit_append_latency
    global _audit_chain_errors_total, _audit_verifications_total
    global _audit_archived_total, _db_query_duration

    if _requests_total is not None:
        return

    # ------------------------
    # HTTP
    # ------------------------
    _requests_total = Counter(
        "hotel_core_requests_total",
        "Total de requests HTTP",
        ["endpoint", "method", "status"],
        registry=_registry,
    )

    _request_latency = Histogram(
        "hotel_core_request_latency_seconds",
        "Latencia de requests HTTP (segundos)",
        ["endpoint", "method"],
        buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        registry=_registry,
    )

    # ------------------------
    # Autorización
    # ------------------------
    _authz_decisions_total = Counter(
        "hotel_core_authz_decisions_total",
        "Decisiones del gate de autorización",
        ["outcome", "code"],
        registry=_registry,
    )

    _authz_catalog_failures_total = Counter(
        "hotel_core_authz_catalog_failures_total",
        "Fallas del catálogo de permisos (deny fail-closed)",
        registry=_registry,
    )

    _authz_platform_bypass_total = Counter(
        "hotel_core_authz_platform_bypass_total",
        "Accesos permitidos por bypass de platform owner (SUPER_ADMIN)",
        registry=_registry,
    )

    _permission_cache_total = Counter(
        "hotel_core_permission_cache_total",
        "Lookups del cache de grants por rol",
        ["result"],
        registry=_registry,
    )

    # ------------------------
    # Auditoría
    # ------------------------
    _audit_appends_total = Counter(
        "hotel_core_audit_appends_total",
        "Appends a la cadena de auditoría",
        ["status"],
        registry=_registry,
    )

    _audit_append_latency = Histogram(
        "hotel_core_audit_append_latency_seconds",
        "Latencia del append (incluye lock del head)",
        buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        registry=_registry,
    )

    _audit_chain_errors_total = Counter(
        "hotel_core_audit_chain_errors_total",
        "Hallazgos de integridad detectados por el verificador",
        ["kind"],
        registry=_registry,
    )

    _audit_verifications_total = Counter(
        "hotel_core_audit_verifications_total",
        "Corridas del verificador de cadena",
        ["result"],
        registry=_registry,
    )

    _audit_archived_total = Counter(
        "hotel_core_audit_archived_total",
        "Entradas marcadas como archivadas",
        registry=_registry,
    )

    # ------------------------
    # DB
    # ------------------------
    _db_query_duration = Histogram(
        "hotel_core_db_query_duration_seconds",
        "Duración de queries DB (segundos)",
        ["kind"],
        buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        registry=_registry,
    )


# Inicialización al importar el módulo
_init_metrics()


# -----------------------------------------------------------------------------
# API pública (helpers de registro)
# -----------------------------------------------------------------------------


def record_request_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    latency_seconds: float,
) -> None:
    """Registra métricas HTTP (endpoint normalizado, status agrupado)."""
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized, method=method, status=_status_bucket(status_code)
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_authz_decision(allowed: bool, code: str) -> None:
    _authz_decisions_total.labels(
        outcome="allow" if allowed else "deny", code=code
    ).inc()


def record_catalog_failure(count: int = 1) -> None:
    _authz_catalog_failures_total.inc(count)


def record_platform_bypass(count: int = 1) -> None:
    _authz_platform_bypass_total.inc(count)


def record_permission_cache(hit: bool) -> None:
    _permission_cache_total.labels(result="hit" if hit else "miss").inc()


def record_audit_append(status: str, latency_seconds: float | None = None) -> None:
    """Cuenta appends por status ("ok" | "failed")."""
    _audit_appends_total.labels(status=status).inc()
    if latency_seconds is not None:
        _audit_append_latency.observe(latency_seconds)


def record_chain_error(kind: str, count: int = 1) -> None:
    _audit_chain_errors_total.labels(kind=kind).inc(count)


def record_verification(valid: bool) -> None:
    _audit_verifications_total.labels(result="valid" if valid else "invalid").inc()


def record_archived(count: int) -> None:
    if count > 0:
        _audit_archived_total.inc(count)


def observe_db_query_duration(kind: str, seconds: float) -> None:
    """Observa duración de una query DB.

    Reglas:
      - `kind` debe ser baja cardinalidad (SELECT/INSERT/UPDATE/...).
      - NO incluir SQL completo.
    """
    _db_query_duration.labels(kind=(kind or "UNKNOWN").upper()).observe(seconds)


# -----------------------------------------------------------------------------
# Helpers internos
# -----------------------------------------------------------------------------


def _normalize_endpoint(path: str) -> str:
    """Reemplaza UUIDs e IDs numéricos por `{id}`."""
    path = re.sub(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "{id}",
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r"/\d+", "/{id}", path)
    return path


def _status_bucket(code: int) -> str:
    if 200 <= code < 300:
        return "2xx"
    if 400 <= code < 500:
        return "4xx"
    if 500 <= code < 600:
        return "5xx"
    return "other"


def get_metrics_response() -> tuple[bytes, str]:
    """Genera el body y content-type para /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
