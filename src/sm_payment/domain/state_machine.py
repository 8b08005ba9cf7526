"""Payment status transitions.

    (accept) ─▶ pending ─▶ agreed ─▶ completed ─▶ disputed ─▶ refunded
                                        ▲             │
                                        └─────────────┘  (refund rejected)

Any edge touching disputed/refunded is privileged (admin only). Reaching
disputed/refunded from pending/agreed is possible only through the explicit
administrative override, never through a normal status update.
"""

from src.sm_common.enums import PaymentStatus

_PE = PaymentStatus.PENDING.value
_AG = PaymentStatus.AGREED.value
_CO = PaymentStatus.COMPLETED.value
_DI = PaymentStatus.DISPUTED.value
_RF = PaymentStatus.REFUNDED.value

TRANSITIONS: dict[str, frozenset[str]] = {
    _PE: frozenset({_AG}),
    _AG: frozenset({_CO}),
    _CO: frozenset({_DI}),
    _DI: frozenset({_RF, _CO}),
    _RF: frozenset(),
}

_PRIVILEGED_STATUSES = frozenset({_DI, _RF})

OVERRIDE_TRANSITIONS: dict[str, frozenset[str]] = {
    _PE: frozenset({_DI, _RF}),
    _AG: frozenset({_DI, _RF}),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def is_privileged(current: str, target: str) -> bool:
    return current in _PRIVILEGED_STATUSES or target in _PRIVILEGED_STATUSES


def can_override(current: str, target: str) -> bool:
    return target in OVERRIDE_TRANSITIONS.get(current, frozenset())
