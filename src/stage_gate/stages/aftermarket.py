"""
Aftermarket stages: S11 Finished Goods & Custody through S14 Refurbish & Recycle.
"""

from ..core.roles import Role
from ..core.stage_contract import (
    ActionRule,
    CounterEffect,
    DependencyLink,
    Interlock,
    Precondition,
    StageDefinition,
    transfer,
)

WAREHOUSE_OPERATIONAL = Precondition(
    "warehouse_status", "Warehouse Not Operational", equals="OPERATIONAL"
)


def finished_goods() -> StageDefinition:
    stores = {Role.STORES}
    logistics = {Role.LOGISTICS}
    return StageDefinition(
        stage_id="S11",
        title="Finished Goods & Custody",
        status_field="dispatch_status",
        states=("IDLE", "READY", "DISPATCHED", "IN_TRANSIT", "DELIVERED"),
        initial_status="IDLE",
        cleared_states={"DELIVERED"},
        counters={
            "stock_ready": 450,
            "stock_reserved": 60,
            "total_dispatched": 125,
            "custody_handover_pending": 12,
            "consignments_in_transit": 5,
        },
        attributes={"warehouse_status": "OPERATIONAL"},
        dependencies={
            "provisioning_dependency": DependencyLink("S10", "BMS Provisioning (S10) Not Ready"),
        },
        interlocks=(Interlock("warehouse_status", {"AUDIT_LOCK"}, "Warehouse under Audit Lock"),),
        last_event_field="last_movement_at",
        seed_last_event="2026-01-16 17:30 IST",
        actions=(
            ActionRule(
                "PREPARE_DISPATCH",
                roles=stores,
                from_states={"IDLE"},
                to_state="READY",
                role_reason="Requires Stores Role",
                state_reason="Dispatch Already In Progress",
                dependency="provisioning_dependency",
                preconditions=(
                    WAREHOUSE_OPERATIONAL,
                    Precondition("stock_ready", "No Ready Stock", minimum=1),
                ),
                effects=transfer("stock_ready", "stock_reserved"),
                stamps_event=True,
                message="Stock reserved for dispatch",
            ),
            ActionRule(
                "HANDOVER_TO_LOGISTICS",
                roles=stores,
                from_states={"READY"},
                to_state="DISPATCHED",
                role_reason="Requires Stores Role",
                state_reason="Dispatch Not Prepared",
                preconditions=(
                    WAREHOUSE_OPERATIONAL,
                    Precondition("stock_reserved", "No Reserved Items", minimum=1),
                ),
                effects=transfer("stock_reserved", "custody_handover_pending"),
                stamps_event=True,
                message="Custody handed over to logistics",
            ),
            ActionRule(
                "CONFIRM_IN_TRANSIT",
                roles=logistics,
                from_states={"DISPATCHED"},
                to_state="IN_TRANSIT",
                role_reason="Requires Logistics Role",
                state_reason="Nothing Handed Over",
                preconditions=(
                    Precondition("custody_handover_pending", "No Handovers Pending", minimum=1),
                ),
                effects=transfer("custody_handover_pending", "consignments_in_transit"),
                message="Consignment confirmed in transit",
            ),
            ActionRule(
                "CONFIRM_DELIVERY",
                roles=logistics,
                from_states={"IN_TRANSIT"},
                to_state="DELIVERED",
                role_reason="Requires Logistics Role",
                state_reason="No Consignment In Transit",
                preconditions=(
                    Precondition("consignments_in_transit", "No Active Shipments", minimum=1),
                ),
                effects=transfer("consignments_in_transit", "total_dispatched"),
                stamps_event=True,
                message="Delivery confirmed by consignee",
            ),
            ActionRule(
                "CLOSE_CUSTODY",
                roles={Role.MANAGEMENT},
                from_states={"DELIVERED"},
                to_state="IDLE",
                role_reason="Requires Plant Director",
                state_reason="Delivery Not Confirmed",
                preconditions=(
                    Precondition("total_dispatched", "Nothing Delivered", minimum=1),
                ),
                message="Chain of custody closed",
            ),
        ),
    )


def warranty_lifecycle() -> StageDefinition:
    management = {Role.MANAGEMENT}
    return StageDefinition(
        stage_id="S12",
        title="Warranty & Lifecycle",
        status_field="lifecycle_status",
        states=("ACTIVE", "CLAIM", "EXPIRED"),
        initial_status="ACTIVE",
        cleared_states={"ACTIVE", "CLAIM"},
        counters={"packs_under_warranty": 850, "packs_out_of_warranty": 45, "active_claims": 3},
        attributes={"warranty_active_from": "2025-01-01"},
        dependencies={
            "dispatch_dependency": DependencyLink("S11", "Dispatch (S11) Incomplete"),
        },
        last_event_field="last_claim_at",
        actions=(
            ActionRule(
                "VIEW_WARRANTY_DETAILS",
                roles={Role.SERVICE, Role.MANAGEMENT},
                role_reason="Access Denied",
                dependency="dispatch_dependency",
                message="Warranty details viewed",
            ),
            ActionRule(
                "INITIATE_WARRANTY_CLAIM",
                roles={Role.SERVICE},
                from_states={"ACTIVE"},
                to_state="CLAIM",
                role_reason="Requires Service Role",
                state_reason="Warranty Not Active",
                dependency="dispatch_dependency",
                effects=(CounterEffect("active_claims", 1),),
                stamps_event=True,
                message="Warranty claim initiated",
            ),
            ActionRule(
                "APPROVE_WARRANTY_CLAIM",
                roles=management,
                from_states={"CLAIM"},
                to_state="ACTIVE",
                role_reason="Requires Management Role",
                state_reason="No Active Claim",
                dependency="dispatch_dependency",
                effects=(CounterEffect("active_claims", -1),),
                message="Warranty claim approved",
            ),
            ActionRule(
                "REJECT_WARRANTY_CLAIM",
                roles=management,
                from_states={"CLAIM"},
                to_state="ACTIVE",
                role_reason="Requires Management Role",
                state_reason="No Active Claim",
                dependency="dispatch_dependency",
                effects=(CounterEffect("active_claims", -1),),
                message="Warranty claim rejected",
            ),
            ActionRule(
                "CLOSE_WARRANTY",
                roles=management,
                from_states={"EXPIRED"},
                role_reason="Requires Plant Director",
                state_reason="Warranty Not Expired",
                dependency="dispatch_dependency",
                message="Expired warranty closed",
            ),
        ),
    )


def service_returns() -> StageDefinition:
    service = {Role.SERVICE}
    return StageDefinition(
        stage_id="S13",
        title="Service & Returns",
        status_field="service_status",
        states=("IDLE", "SERVICE_OPEN", "RETURN_IN_PROGRESS", "CLOSED"),
        initial_status="SERVICE_OPEN",
        cleared_states={"CLOSED"},
        counters={
            "service_requests_open": 5,
            "service_requests_closed": 12,
            "returns_initiated": 3,
            "returns_in_transit": 1,
        },
        dependencies={
            "warranty_dependency": DependencyLink("S12", "Warranty (S12) Blocked or Expired"),
        },
        last_event_field="last_service_event_at",
        seed_last_event="2026-01-16 10:30 IST",
        actions=(
            ActionRule(
                "OPEN_SERVICE_REQUEST",
                roles=service,
                from_states={"IDLE"},
                to_state="SERVICE_OPEN",
                role_reason="Requires Service Role",
                state_reason="Service Active",
                dependency="warranty_dependency",
                effects=(CounterEffect("service_requests_open", 1),),
                stamps_event=True,
                message="Service request opened",
            ),
            ActionRule(
                "CLOSE_SERVICE_REQUEST",
                roles=service,
                from_states={"SERVICE_OPEN"},
                to_state="CLOSED",
                role_reason="Requires Service Role",
                state_reason="No Open Request",
                effects=transfer("service_requests_open", "service_requests_closed"),
                stamps_event=True,
                message="Service request resolved in the field",
            ),
            ActionRule(
                "INITIATE_RETURN",
                roles={Role.SUSTAINABILITY, Role.SERVICE},
                from_states={"SERVICE_OPEN"},
                to_state="RETURN_IN_PROGRESS",
                role_reason="Requires Svc/Returns Role",
                state_reason="No Open Request",
                effects=(
                    CounterEffect("returns_initiated", 1),
                    CounterEffect("returns_in_transit", 1),
                ),
                message="Return authorized, pack in transit to plant",
            ),
            ActionRule(
                "CONFIRM_RETURN_RECEIPT",
                roles={Role.SUSTAINABILITY},
                from_states={"RETURN_IN_PROGRESS"},
                to_state="CLOSED",
                role_reason="Requires Returns Mgr",
                state_reason="No Return In Transit",
                effects=(
                    CounterEffect("returns_in_transit", -1),
                    *transfer("service_requests_open", "service_requests_closed"),
                ),
                stamps_event=True,
                message="Returned pack received",
            ),
            ActionRule(
                "CLOSE_SERVICE_CASE",
                roles={Role.MANAGEMENT},
                from_states={"CLOSED"},
                to_state="IDLE",
                role_reason="Requires Management Role",
                state_reason="Case Not Closed",
                message="Service case archived",
            ),
        ),
    )


def refurbish_recycle() -> StageDefinition:
    engineering = {Role.ENGINEERING}
    sustainability = {Role.SUSTAINABILITY}
    return StageDefinition(
        stage_id="S14",
        title="Refurbish & Recycle",
        status_field="circular_status",
        states=("IDLE", "INSPECTION", "REFURBISH", "RECYCLE", "COMPLETED"),
        initial_status="REFURBISH",
        cleared_states={"RECYCLE", "COMPLETED"},
        counters={
            "packs_eligible_for_refurbish": 5,
            "packs_sent_for_refurbish": 12,
            "packs_sent_for_recycle": 45,
            "refurbish_in_progress": 3,
        },
        dependencies={
            "service_dependency": DependencyLink(
                "S13", "Service/Returns (S13) dependency not met"
            ),
        },
        last_event_field="last_circular_action_at",
        seed_last_event="2026-01-16 11:00 IST",
        actions=(
            ActionRule(
                "START_INSPECTION",
                roles=engineering,
                from_states={"IDLE"},
                to_state="INSPECTION",
                role_reason="Requires Engineering Role",
                state_reason="Process already active",
                dependency="service_dependency",
                stamps_event=True,
                message="Returned pack inspection started",
            ),
            ActionRule(
                "MARK_FOR_REFURBISH",
                roles=sustainability,
                from_states={"INSPECTION"},
                to_state="REFURBISH",
                role_reason="Requires Sustainability Role",
                state_reason="Not in Inspection",
                effects=(
                    *transfer("packs_eligible_for_refurbish", "packs_sent_for_refurbish"),
                    CounterEffect("refurbish_in_progress", 1),
                ),
                message="Pack routed to refurbishment",
            ),
            ActionRule(
                "MARK_FOR_RECYCLE",
                roles=sustainability,
                from_states={"INSPECTION"},
                to_state="RECYCLE",
                role_reason="Requires Sustainability Role",
                state_reason="Not in Inspection",
                effects=transfer("packs_eligible_for_refurbish", "packs_sent_for_recycle"),
                message="Pack routed to recycling",
            ),
            ActionRule(
                "COMPLETE_REFURBISH",
                roles=engineering,
                from_states={"REFURBISH"},
                to_state="COMPLETED",
                role_reason="Requires Engineering Role",
                state_reason="Refurbish not active",
                effects=(CounterEffect("refurbish_in_progress", -1),),
                stamps_event=True,
                message="Refurbishment completed",
            ),
            ActionRule(
                "CLOSE_CIRCULAR_CASE",
                roles={Role.MANAGEMENT},
                from_states={"RECYCLE", "COMPLETED"},
                to_state="IDLE",
                role_reason="Requires Director Role",
                state_reason="Process not finalized",
                message="Circular economy case closed",
            ),
        ),
    )


def definitions() -> list[StageDefinition]:
    return [finished_goods(), warranty_lifecycle(), service_returns(), refurbish_recycle()]
