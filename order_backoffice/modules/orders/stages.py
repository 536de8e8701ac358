from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...constants import DELETE_CONFIRM_PHRASE
from .entities import Order, Stage
from .errors import ConfirmationRequired, TransitionBlocked

# ---------- Canonical set & order ----------
VALID_STAGES: tuple[Stage, ...] = tuple(Stage)
# Forward flow; vraceno is reachable from anywhere and has no successor.
_NEXT: dict[Stage, Optional[Stage]] = {
    Stage.PORUCENO: Stage.NA_STANJU,
    Stage.NA_STANJU: Stage.POSLATO,
    Stage.POSLATO: Stage.STIGLO,
    Stage.STIGLO: Stage.LEGLE_PARE,
    Stage.LEGLE_PARE: None,
    Stage.VRACENO: None,
}

# ---------- Human labels ----------
LABELS = {
    Stage.PORUCENO: "Poruceno",
    Stage.NA_STANJU: "Na stanju",
    Stage.POSLATO: "Poslato",
    Stage.STIGLO: "Stiglo",
    Stage.LEGLE_PARE: "Leglo",
    Stage.VRACENO: "Vraćeno",
}

# Style tokens the views map to colors/badges
STYLES = {
    Stage.PORUCENO:   {"badge": "warning", "fg": "#92400E", "bg": "#FFFBEB"},
    Stage.NA_STANJU:  {"badge": "info",    "fg": "#3730A3", "bg": "#EEF2FF"},
    Stage.POSLATO:    {"badge": "info",    "fg": "#1E40AF", "bg": "#EFF6FF"},
    Stage.STIGLO:     {"badge": "success", "fg": "#065F46", "bg": "#ECFDF5"},
    Stage.LEGLE_PARE: {"badge": "neutral", "fg": "#0F172A", "bg": "#F1F5F9"},
    Stage.VRACENO:    {"badge": "danger",  "fg": "#9F1239", "bg": "#FFF1F2"},
}

# Deleting an order in one of these stages needs the typed phrase.
CONFIRM_DELETE_STAGES = frozenset({Stage.STIGLO, Stage.LEGLE_PARE, Stage.VRACENO})

for _table in (_NEXT, LABELS, STYLES):
    if set(_table) != set(Stage):
        raise RuntimeError("Stage table is missing entries: %s" % sorted(set(Stage) - set(_table)))


# ---------- API ----------

def label(stage: Stage | str) -> str:
    return LABELS[Stage.parse(stage)]


def style_tokens(stage: Stage | str) -> dict:
    return STYLES[Stage.parse(stage)]


def next_stage(stage: Stage | str) -> Optional[Stage]:
    return _NEXT[Stage.parse(stage)]


def normalize_stage_filters(values: Iterable[str | Stage]) -> list[Stage]:
    """Drop unknown values and duplicates; return the rest in canonical order."""
    wanted = set()
    for v in values:
        s = v.value if isinstance(v, Stage) else str(v or "").strip().lower()
        if s in {st.value for st in VALID_STAGES}:
            wanted.add(s)
    return [s for s in VALID_STAGES if s.value in wanted]


def requires_shipment_number(stage: Stage | str) -> bool:
    return Stage.parse(stage) is Stage.POSLATO


@dataclass(frozen=True)
class StagePlan:
    """
    Outcome of planning a stage change.

    `deferred` means the target needs input first (a shipment number); the
    caller collects it and commits stage + number together.
    """
    target: Stage
    shipment_number: str | None
    deferred: bool = False
    no_op: bool = False


def plan_transition(order: Order, target: Stage | str, shipment_number: str | None = None) -> StagePlan:
    """
    Work out what a stage change does to the order, without changing anything.

      - to poslato: needs a non-empty shipment number; without one the plan is
        deferred (stage unchanged).
      - from poslato to any other stage: the shipment number is cleared.
      - anything else: allowed, shipment number kept.
    """
    target = Stage.parse(target)
    current = order.stage

    if requires_shipment_number(target):
        number = (shipment_number or "").strip()
        if not number:
            return StagePlan(target=target, shipment_number=order.shipment_number, deferred=True)
        no_op = current is Stage.POSLATO and number == (order.shipment_number or "")
        return StagePlan(target=target, shipment_number=number, no_op=no_op)

    if current is Stage.POSLATO:
        return StagePlan(target=target, shipment_number=None)

    return StagePlan(target=target, shipment_number=order.shipment_number, no_op=current is target)


def apply_transition(order: Order, target: Stage | str, shipment_number: str | None = None) -> Order:
    """
    Return the order in the target stage or raise TransitionBlocked.

    Only the stage and shipment number change; prices and profit are untouched.
    """
    plan = plan_transition(order, target, shipment_number)
    if plan.deferred:
        raise TransitionBlocked("Enter the shipment number before marking the order as shipped.")
    if plan.no_op:
        return order
    return order.with_stage(plan.target, plan.shipment_number)


# ---------- Destructive action gating ----------

def requires_delete_confirmation(stage: Stage | str) -> bool:
    return Stage.parse(stage) in CONFIRM_DELETE_STAGES


def is_delete_phrase_valid(text: str | None) -> bool:
    return (text or "").strip().lower() == DELETE_CONFIRM_PHRASE


def ensure_delete_allowed(order: Order, confirmation: str | None = None) -> None:
    if requires_delete_confirmation(order.stage) and not is_delete_phrase_valid(confirmation):
        raise ConfirmationRequired(
            f'Type "{DELETE_CONFIRM_PHRASE}" to delete an order in stage {label(order.stage)}.'
        )
