"""
===============================================================================
TARJETA CRC — domain/scope.py
===============================================================================

Módulo:
    Evaluación de scope (función pura)

Responsabilidades:
    - Decidir si un scope de grant alcanza a un Target para un Actor.
    - Comparar ids por valor (UUID y str del mismo id son iguales).

Colaboradores:
    - identity.authorization: llama covers() por cada grant candidato.

Reglas:
    - ALL        -> siempre (único scope que alcanza un target de plataforma).
    - HOTEL      -> target sin hotel, o mismo hotel que el actor.
    - DEPARTMENT -> nunca cruza hoteles; luego target sin depto, actor sin
                    depto, o mismo depto.
    - OWN        -> solo si target.user_id == actor.id.
    - Otro valor -> nunca.
===============================================================================
"""

from __future__ import annotations

from typing import Any, Optional

from .permissions import Actor, Scope, ScopeValue, Target


def _same(a: Any, b: Any) -> bool:
    return str(a) == str(b)


def covers(actor: Actor, scope: ScopeValue, target: Optional[Target]) -> bool:
    target = target or Target()

    if scope == Scope.ALL:
        return True

    if target.platform:
        return False

    if scope == Scope.HOTEL:
        return target.hotel_id is None or (
            actor.hotel_id is not None and _same(target.hotel_id, actor.hotel_id)
        )

    if scope == Scope.DEPARTMENT:
        if (
            target.hotel_id is not None
            and actor.hotel_id is not None
            and not _same(target.hotel_id, actor.hotel_id)
        ):
            return False
        if target.department_id is None or actor.department_id is None:
            return True
        return _same(target.department_id, actor.department_id)

    if scope == Scope.OWN:
        return target.user_id is not None and _same(target.user_id, actor.id)

    return False


class ScopeEvaluator:
    """Envoltorio inyectable de covers() (permite dobles en tests)."""

    def covers(
        self, actor: Actor, scope: ScopeValue, target: Optional[Target]
    ) -> bool:
        return covers(actor, scope, target)
