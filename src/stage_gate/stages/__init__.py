"""
Stage catalog for Stage Gate.

The eighteen stages of the battery-pack workflow, grouped by area:

- manufacturing: S0 System Setup .. S8 Aging & Soak
- traceability: S9 Final QA & Registry, S10 BMS Provisioning
- aftermarket: S11 Finished Goods & Custody .. S14 Refurbish & Recycle
- governance: S15 Compliance & ESG .. S17 Closure & Archive

Each module exposes one factory per stage and a `definitions()` list in
workflow order. Factories build fresh definitions on every call.
"""

from ..core.stage_contract import StageDefinition
from . import aftermarket, governance, manufacturing, traceability


def default_stage_definitions() -> list[StageDefinition]:
    """All default stage definitions, S0 to S17."""
    return [
        *manufacturing.definitions(),
        *traceability.definitions(),
        *aftermarket.definitions(),
        *governance.definitions(),
    ]


__all__ = [
    "default_stage_definitions",
    "manufacturing",
    "traceability",
    "aftermarket",
    "governance",
]
