"""
Plant setup and production stages: S0 System Setup to S8 Aging & Soak.
"""

from ..core.roles import Role
from ..core.stage_contract import (
    ActionRule,
    CounterEffect,
    DependencyLink,
    Interlock,
    StageDefinition,
    transfer,
)

SUPERVISION = {Role.OPERATOR, Role.SUPERVISOR}
QA_OR_SUPERVISOR = {Role.QA_ENGINEER, Role.SUPERVISOR}


def system_setup() -> StageDefinition:
    editable = {"READY", "CONFIGURING"}
    return StageDefinition(
        stage_id="S0",
        title="System Setup",
        status_field="status",
        states=("READY", "CONFIGURING", "MAINTENANCE"),
        initial_status="READY",
        cleared_states={"READY"},
        counters={"active_lines": 2},
        attributes={
            "plant_id": "FAC-IND-WB-001-A",
            "plant_name": "Gigafactory 1 - Bengal Unit",
            "region": "Kolkata, WB, India (IST Zone)",
            "active_sop_version": "V3.3.0-RC1",
        },
        interlocks=(Interlock("status", {"MAINTENANCE"}, "System is in Maintenance Mode"),),
        last_event_field="config_last_updated",
        seed_last_event="2026-01-16 09:00 IST",
        actions=(
            ActionRule(
                "EDIT_PLANT_DETAILS",
                roles=(),
                from_states=editable,
                to_state="CONFIGURING",
                role_reason="Requires System Admin Privileges",
                stamps_event=True,
                message="Plant details opened for editing by {role}",
            ),
            ActionRule(
                "MANAGE_LINES",
                roles={Role.MANAGEMENT},
                from_states=editable,
                to_state="CONFIGURING",
                role_reason="Restricted to Admin & Management",
                message="Line configuration updated",
            ),
            ActionRule(
                "UPDATE_REGULATIONS",
                roles={Role.MANAGEMENT, Role.COMPLIANCE},
                from_states=editable,
                to_state="CONFIGURING",
                role_reason="Requires Compliance or Admin Role",
                stamps_event=True,
                message="Regulatory profile updated",
            ),
            ActionRule(
                "SYNC_SOP",
                roles=(),
                from_states=editable,
                to_state="READY",
                role_reason="Admin Only",
                stamps_event=True,
                message="SOP baseline synchronized, plant configuration READY",
            ),
        ),
    )


def sku_blueprint() -> StageDefinition:
    engineering = {Role.ENGINEERING}
    return StageDefinition(
        stage_id="S1",
        title="SKU Blueprint",
        status_field="approval_status",
        states=("DRAFT", "REVIEW", "APPROVED"),
        initial_status="APPROVED",
        cleared_states={"APPROVED"},
        counters={"total_skus": 3},
        attributes={
            "active_revision": "Rev A.3",
            "compliance_ready": True,
            "engineering_signoff": "ENG-LEAD-01",
        },
        last_event_field="last_blueprint_update",
        seed_last_event="2026-01-15 14:30 IST",
        actions=(
            ActionRule(
                "CREATE_SKU",
                roles=engineering,
                to_state="DRAFT",
                role_reason="Requires Engineering or Admin Role",
                effects=(CounterEffect("total_skus", 1),),
                stamps_event=True,
                message="New SKU draft created",
            ),
            ActionRule(
                "EDIT_BLUEPRINT",
                roles=engineering,
                from_states={"DRAFT"},
                role_reason="Requires Engineering Role",
                state_reason="Locked in {status} State",
                stamps_event=True,
                message="Blueprint draft edited",
            ),
            ActionRule(
                "SUBMIT_FOR_REVIEW",
                roles=engineering,
                from_states={"DRAFT"},
                to_state="REVIEW",
                role_reason="Requires Engineering Role",
                state_reason="Not in Draft State",
                message="Blueprint submitted for review",
            ),
            ActionRule(
                "APPROVE_BLUEPRINT",
                roles={Role.MANAGEMENT, Role.COMPLIANCE},
                from_states={"REVIEW"},
                to_state="APPROVED",
                role_reason="Requires Approver Role",
                state_reason="Nothing to Review",
                stamps_event=True,
                message="Blueprint approved by {role}",
            ),
            ActionRule(
                "PUBLISH_SKU_BLUEPRINT",
                roles={Role.MANAGEMENT},
                from_states={"APPROVED"},
                role_reason="Requires Management Role",
                state_reason="Blueprint Not Approved",
                message="Approved blueprint published to procurement",
            ),
        ),
    )


def procurement() -> StageDefinition:
    buyers = {Role.PROCUREMENT}
    directors = {Role.MANAGEMENT}
    return StageDefinition(
        stage_id="S2",
        title="Procurement",
        status_field="procurement_status",
        states=("IDLE", "RAISING_PO", "WAITING_APPROVAL", "APPROVED"),
        initial_status="WAITING_APPROVAL",
        cleared_states={"APPROVED"},
        counters={"active_pos": 5, "pending_approvals": 2, "vendor_catalog": 14},
        dependencies={"blueprint_dependency": DependencyLink("S1", "S1 Blueprint Not Ready")},
        last_event_field="last_po_created_at",
        seed_last_event="2026-01-16 11:45 IST",
        actions=(
            ActionRule(
                "CREATE_PO",
                roles=buyers,
                from_states={"IDLE", "RAISING_PO"},
                to_state="RAISING_PO",
                role_reason="Requires Procurement Role",
                state_reason="PO already in workflow",
                dependency="blueprint_dependency",
                stamps_event=True,
                message="Draft purchase order raised",
            ),
            ActionRule(
                "SUBMIT_PO_FOR_APPROVAL",
                roles=buyers,
                from_states={"RAISING_PO"},
                to_state="WAITING_APPROVAL",
                role_reason="Requires Procurement Role",
                state_reason="No Active Draft PO",
                effects=(CounterEffect("pending_approvals", 1),),
                message="Purchase order submitted for approval",
            ),
            ActionRule(
                "APPROVE_PO",
                roles=directors,
                from_states={"WAITING_APPROVAL"},
                to_state="APPROVED",
                role_reason="Requires Management Role",
                state_reason="No PO pending approval",
                effects=(CounterEffect("pending_approvals", -1),),
                message="Purchase order approved",
            ),
            ActionRule(
                "ISSUE_PO_TO_VENDOR",
                roles=buyers,
                from_states={"APPROVED"},
                role_reason="Requires Procurement Role",
                state_reason="PO not approved",
                effects=(CounterEffect("active_pos", 1),),
                message="Purchase order issued to vendor",
            ),
            ActionRule(
                "CLOSE_PROCUREMENT_CYCLE",
                roles=directors,
                from_states={"APPROVED"},
                to_state="IDLE",
                role_reason="Requires Management Role",
                state_reason="Cycle incomplete",
                message="Procurement cycle closed",
            ),
        ),
    )


def inbound_receipt() -> StageDefinition:
    stores = {Role.STORES, Role.SUPERVISOR}
    inspectors = QA_OR_SUPERVISOR
    gate = "procurement_dependency"
    return StageDefinition(
        stage_id="S3",
        title="Inbound Receipt",
        status_field="inbound_status",
        states=("AWAITING_RECEIPT", "INSPECTION", "SERIALIZATION", "STORED"),
        initial_status="AWAITING_RECEIPT",
        cleared_states={"STORED"},
        counters={
            "inbound_shipments": 3,
            "lots_awaiting_inspection": 0,
            "items_awaiting_serialization": 0,
            "serialized_items": 4500,
        },
        dependencies={gate: DependencyLink("S2", "Procurement Dependency Blocked")},
        last_event_field="last_receipt_at",
        seed_last_event="2026-01-11 08:30 IST",
        actions=(
            ActionRule(
                "RECORD_RECEIPT",
                roles=stores,
                from_states={"AWAITING_RECEIPT"},
                to_state="INSPECTION",
                role_reason="Requires Stores Role",
                state_reason="Receipt already recorded",
                dependency=gate,
                effects=transfer("inbound_shipments", "lots_awaiting_inspection"),
                stamps_event=True,
                message="Inbound shipment received at dock",
            ),
            ActionRule(
                "START_INSPECTION",
                roles=inspectors,
                from_states={"INSPECTION"},
                role_reason="Requires QA Role",
                state_reason="Not ready for Inspection",
                dependency=gate,
                message="Incoming quality inspection started",
            ),
            ActionRule(
                "COMPLETE_INSPECTION",
                roles=inspectors,
                from_states={"INSPECTION"},
                to_state="SERIALIZATION",
                role_reason="Requires QA Role",
                state_reason="Inspection not active",
                dependency=gate,
                effects=transfer("lots_awaiting_inspection", "items_awaiting_serialization"),
                message="Inspection passed, lot released for serialization",
            ),
            ActionRule(
                "START_SERIALIZATION",
                roles=stores | {Role.OPERATOR},
                from_states={"SERIALIZATION"},
                to_state="STORED",
                role_reason="Requires Stores/Ops Role",
                state_reason="Serialization not active",
                dependency=gate,
                effects=transfer("items_awaiting_serialization", "serialized_items"),
                message="Serial numbers assigned to received items",
            ),
            ActionRule(
                "MOVE_TO_STORAGE",
                roles=stores,
                from_states={"STORED"},
                to_state="AWAITING_RECEIPT",
                role_reason="Requires Stores Role",
                state_reason="Not ready for Storage",
                dependency=gate,
                message="Serialized items moved to storage",
            ),
        ),
    )


def batch_planning() -> StageDefinition:
    planners = {Role.PLANNER}
    directors = {Role.MANAGEMENT}
    gate = "inbound_dependency"
    return StageDefinition(
        stage_id="S4",
        title="Batch Planning",
        status_field="planning_status",
        states=("NOT_PLANNED", "PLANNING", "PLANNED"),
        initial_status="PLANNED",
        cleared_states={"PLANNED"},
        counters={"planned_batches": 12, "active_batches": 3, "unallocated_inventory": 450},
        dependencies={gate: DependencyLink("S3", "Inbound Logistics (S3) Not Ready")},
        last_event_field="last_batch_planned_at",
        seed_last_event="2026-01-13 10:00 IST",
        actions=(
            ActionRule(
                "CREATE_BATCH_PLAN",
                roles=planners,
                from_states={"NOT_PLANNED"},
                to_state="PLANNING",
                role_reason="Requires Production Planner Role",
                state_reason="Planning phase already active",
                dependency=gate,
                stamps_event=True,
                message="Batch plan drafted",
            ),
            ActionRule(
                "EDIT_BATCH_PLAN",
                roles=planners,
                from_states={"PLANNING"},
                role_reason="Requires Production Planner Role",
                state_reason="Plan not in edit mode",
                message="Batch plan edited",
            ),
            ActionRule(
                "LOCK_BATCH_PLAN",
                roles=directors,
                from_states={"PLANNING"},
                to_state="PLANNED",
                role_reason="Requires Plant Director Role",
                state_reason="Plan not ready for lock (Must be in Planning)",
                effects=(CounterEffect("planned_batches", 1),),
                message="Batch plan locked",
            ),
            ActionRule(
                "RELEASE_BATCHES_TO_LINE",
                roles=directors,
                from_states={"PLANNED"},
                to_state="NOT_PLANNED",
                role_reason="Requires Plant Director Role",
                state_reason="Plan must be Locked first",
                dependency=gate,
                effects=transfer("planned_batches", "active_batches"),
                message="Planned batch released to the line",
            ),
        ),
    )


def module_assembly() -> StageDefinition:
    supervisors = {Role.SUPERVISOR}
    return StageDefinition(
        stage_id="S5",
        title="Module Assembly",
        status_field="assembly_status",
        states=("IDLE", "ASSEMBLING", "PAUSED", "COMPLETED"),
        initial_status="ASSEMBLING",
        cleared_states={"COMPLETED"},
        counters={
            "modules_planned": 500,
            "modules_in_progress": 124,
            "modules_completed": 30,
            "workstation_active": 2,
        },
        dependencies={"planning_dependency": DependencyLink("S4", "Planning (S4) Not Ready")},
        last_event_field="last_assembly_at",
        seed_last_event="2026-01-13 14:10 IST",
        actions=(
            ActionRule(
                "START_ASSEMBLY",
                roles=supervisors,
                from_states={"IDLE"},
                to_state="ASSEMBLING",
                role_reason="Requires Supervisor Role",
                state_reason="Line not IDLE",
                dependency="planning_dependency",
                effects=transfer("modules_planned", "modules_in_progress"),
                stamps_event=True,
                message="Module assembly started",
            ),
            ActionRule(
                "PAUSE_ASSEMBLY",
                roles=supervisors,
                from_states={"ASSEMBLING"},
                to_state="PAUSED",
                role_reason="Requires Supervisor Role",
                state_reason="Line not running",
                message="Module line paused",
            ),
            ActionRule(
                "RESUME_ASSEMBLY",
                roles=supervisors,
                from_states={"PAUSED"},
                to_state="ASSEMBLING",
                role_reason="Requires Supervisor Role",
                state_reason="Line not paused",
                message="Module line resumed",
            ),
            ActionRule(
                "COMPLETE_MODULE",
                roles={Role.OPERATOR},
                from_states={"ASSEMBLING"},
                to_state="COMPLETED",
                role_reason="Requires Operator Role",
                state_reason="Line not running",
                effects=transfer("modules_in_progress", "modules_completed"),
                stamps_event=True,
                message="Module build completed",
            ),
            ActionRule(
                "HANDOVER_TO_QA",
                roles=supervisors,
                from_states={"COMPLETED"},
                to_state="IDLE",
                role_reason="Requires Supervisor Role",
                state_reason="Batch not completed",
                message="Completed modules handed over to QA",
            ),
        ),
    )


def module_qa() -> StageDefinition:
    qa = {Role.QA_ENGINEER}
    gate = "assembly_dependency"
    inspecting = {"INSPECTING"}
    return StageDefinition(
        stage_id="S6",
        title="Module QA",
        status_field="qa_status",
        states=("IDLE", "INSPECTING", "BLOCKED"),
        initial_status="INSPECTING",
        cleared_states={"IDLE"},
        counters={
            "modules_pending": 45,
            "modules_in_review": 1,
            "modules_cleared": 420,
            "modules_rejected": 3,
        },
        dependencies={gate: DependencyLink("S5", "Upstream Assembly (S5) Blocked")},
        last_event_field="last_inspection_at",
        seed_last_event="2026-01-16 14:45 IST",
        actions=(
            ActionRule(
                "START_SESSION",
                roles=qa,
                from_states={"IDLE"},
                to_state="INSPECTING",
                role_reason="Requires QA Role",
                state_reason="Session already active",
                dependency=gate,
                effects=transfer("modules_pending", "modules_in_review"),
                stamps_event=True,
                message="Module inspection session started",
            ),
            ActionRule(
                "LOG_OBSERVATION",
                roles=qa,
                from_states=inspecting,
                role_reason="Read-only view",
                state_reason="No active inspection",
                dependency=gate,
                message="Checklist observation logged: {notes}",
            ),
            ActionRule(
                "SUBMIT_PASS",
                roles=qa,
                from_states=inspecting,
                to_state="IDLE",
                role_reason="Requires QA Role",
                state_reason="No active inspection",
                dependency=gate,
                effects=transfer("modules_in_review", "modules_cleared"),
                stamps_event=True,
                message="Module passed QA",
            ),
            ActionRule(
                "SUBMIT_REWORK",
                roles=QA_OR_SUPERVISOR,
                from_states=inspecting,
                to_state="IDLE",
                role_reason="Requires QA/Sup Role",
                state_reason="No active inspection",
                dependency=gate,
                effects=transfer("modules_in_review", "modules_pending"),
                message="Module sent back for rework",
            ),
            ActionRule(
                "SUBMIT_REJECT",
                roles={Role.SUPERVISOR},
                from_states=inspecting,
                to_state="IDLE",
                role_reason="Requires Supervisor Authorization",
                state_reason="No active inspection",
                dependency=gate,
                effects=transfer("modules_in_review", "modules_rejected"),
                message="Module rejected",
            ),
        ),
    )


def pack_assembly() -> StageDefinition:
    return StageDefinition(
        stage_id="S7",
        title="Pack Assembly",
        status_field="assembly_status",
        states=("IDLE", "ASSEMBLING", "PAUSED", "COMPLETED"),
        initial_status="ASSEMBLING",
        cleared_states={"COMPLETED"},
        counters={"packs_planned": 125, "packs_in_progress": 1, "packs_completed": 30},
        attributes={"active_line_id": "Line A"},
        dependencies={
            "module_qa_dependency": DependencyLink("S6", "Module QA (S6) Dependency Failed"),
        },
        last_event_field="last_assembly_at",
        seed_last_event="2026-01-16 15:30 IST",
        actions=(
            ActionRule(
                "START_ASSEMBLY",
                roles=SUPERVISION,
                from_states={"IDLE"},
                to_state="ASSEMBLING",
                role_reason="Requires Operator/Sup Role",
                state_reason="Line not IDLE",
                dependency="module_qa_dependency",
                effects=transfer("packs_planned", "packs_in_progress"),
                stamps_event=True,
                message="Pack assembly started",
            ),
            ActionRule(
                "PAUSE_ASSEMBLY",
                roles=SUPERVISION,
                from_states={"ASSEMBLING"},
                to_state="PAUSED",
                role_reason="Requires Operator/Sup Role",
                state_reason="Line not running",
                message="Pack line paused",
            ),
            ActionRule(
                "RESUME_ASSEMBLY",
                roles=SUPERVISION,
                from_states={"PAUSED"},
                to_state="ASSEMBLING",
                role_reason="Requires Operator/Sup Role",
                state_reason="Line not paused",
                message="Pack line resumed",
            ),
            ActionRule(
                "COMPLETE_PACK",
                roles={Role.OPERATOR},
                from_states={"ASSEMBLING"},
                to_state="COMPLETED",
                role_reason="Requires Operator Role",
                state_reason="Line not running",
                effects=transfer("packs_in_progress", "packs_completed"),
                stamps_event=True,
                message="Pack build completed",
            ),
            ActionRule(
                "REPORT_ISSUE",
                message="Issue reported on {status} line: {notes}",
            ),
            ActionRule(
                "ABORT_SESSION",
                roles={Role.SUPERVISOR},
                from_states={"ASSEMBLING", "PAUSED", "COMPLETED"},
                to_state="IDLE",
                role_reason="Requires Supervisor Authorization",
                state_reason="No active session",
                message="Pack assembly session aborted",
            ),
        ),
    )


def aging_soak() -> StageDefinition:
    return StageDefinition(
        stage_id="S8",
        title="Aging & Soak",
        status_field="aging_status",
        states=("IDLE", "AGING", "SOAKING", "COMPLETED"),
        initial_status="AGING",
        cleared_states={"COMPLETED"},
        counters={"packs_under_aging": 12, "packs_completed_aging": 18, "soak_chamber_active": 2},
        dependencies={
            "pack_assembly_dependency": DependencyLink("S7", "Pack Assembly (S7) Not Ready"),
        },
        last_event_field="last_soak_cycle_started_at",
        seed_last_event="2026-01-16 16:00 IST",
        actions=(
            ActionRule(
                "START_AGING_CYCLE",
                roles=QA_OR_SUPERVISOR,
                from_states={"IDLE"},
                to_state="AGING",
                role_reason="Requires QA/Sup Role",
                state_reason="Chamber Not IDLE",
                dependency="pack_assembly_dependency",
                effects=(CounterEffect("packs_under_aging", 1),),
                message="Aging cycle started",
            ),
            ActionRule(
                "START_SOAK_CYCLE",
                roles=QA_OR_SUPERVISOR,
                from_states={"AGING"},
                to_state="SOAKING",
                role_reason="Requires QA/Sup Role",
                state_reason="Aging Phase Incomplete",
                effects=(CounterEffect("soak_chamber_active", 1),),
                stamps_event=True,
                message="Soak cycle started",
            ),
            ActionRule(
                "COMPLETE_SOAK",
                roles=QA_OR_SUPERVISOR,
                from_states={"SOAKING"},
                to_state="COMPLETED",
                role_reason="Requires QA/Sup Role",
                state_reason="Soak Phase Not Active",
                effects=(CounterEffect("soak_chamber_active", -1),),
                message="Soak cycle completed",
            ),
            ActionRule(
                "RELEASE_FROM_AGING",
                roles={Role.QA_ENGINEER, Role.MANAGEMENT},
                from_states={"COMPLETED"},
                to_state="IDLE",
                role_reason="Requires QA Lead/Mgmt",
                state_reason="Cycles Not Completed",
                effects=transfer("packs_under_aging", "packs_completed_aging"),
                message="Packs released from aging",
            ),
        ),
    )


def definitions() -> list[StageDefinition]:
    return [
        system_setup(),
        sku_blueprint(),
        procurement(),
        inbound_receipt(),
        batch_planning(),
        module_assembly(),
        module_qa(),
        pack_assembly(),
        aging_soak(),
    ]
