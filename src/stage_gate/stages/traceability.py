"""
Traceability stages: S9 Final QA & Registry and S10 BMS Provisioning.
"""

from ..core.roles import Role
from ..core.stage_contract import (
    ActionRule,
    DependencyLink,
    Precondition,
    StageDefinition,
    transfer,
)


def final_qa_registry() -> StageDefinition:
    qa = {Role.QA_ENGINEER}
    checking = {"CHECKING"}
    return StageDefinition(
        stage_id="S9",
        title="Final QA & Registry",
        status_field="final_qa_status",
        states=("IDLE", "CHECKING", "APPROVED", "REJECTED"),
        initial_status="IDLE",
        cleared_states={"APPROVED"},
        counters={
            "packs_queued_for_final_qa": 15,
            "packs_under_final_qa": 1,
            "packs_final_approved": 415,
            "packs_final_rejected": 2,
        },
        dependencies={"aging_dependency": DependencyLink("S8", "Aging (S8) Incomplete")},
        last_event_field="last_final_qa_at",
        seed_last_event="2026-01-16 16:15 IST",
        actions=(
            ActionRule(
                "START_FINAL_QA",
                roles=qa,
                from_states={"IDLE", "REJECTED"},
                to_state="CHECKING",
                role_reason="Requires QA Role",
                state_reason="Session Active or Complete",
                dependency="aging_dependency",
                effects=transfer("packs_queued_for_final_qa", "packs_under_final_qa"),
                stamps_event=True,
                message="Final QA started for next pack in queue",
            ),
            ActionRule(
                "COMPLETE_FINAL_QA",
                roles=qa,
                from_states=checking,
                role_reason="Requires QA Role",
                state_reason="No active inspection",
                message="Final QA checklist completed",
            ),
            ActionRule(
                "MARK_FINAL_APPROVE",
                roles=qa,
                from_states=checking,
                to_state="APPROVED",
                role_reason="Requires QA Role",
                state_reason="No active inspection",
                effects=transfer("packs_under_final_qa", "packs_final_approved"),
                stamps_event=True,
                message="Pack approved and entered in the battery registry",
            ),
            ActionRule(
                "MARK_FINAL_REJECT",
                roles=qa,
                from_states=checking,
                to_state="REJECTED",
                role_reason="Requires QA Role",
                state_reason="No active inspection",
                effects=transfer("packs_under_final_qa", "packs_final_rejected"),
                stamps_event=True,
                message="Pack rejected at final QA",
            ),
            ActionRule(
                "RELEASE_TO_PACKING",
                roles={Role.MANAGEMENT},
                from_states={"APPROVED"},
                to_state="IDLE",
                role_reason="Requires Management/Lead",
                state_reason="Pack Not Approved",
                message="Approved pack released to packing",
            ),
        ),
    )


def bms_provisioning() -> StageDefinition:
    return StageDefinition(
        stage_id="S10",
        title="BMS Provisioning",
        status_field="provisioning_status",
        states=("IDLE", "PROVISIONING", "VERIFYING", "COMPLETED"),
        initial_status="IDLE",
        cleared_states={"COMPLETED"},
        counters={"packs_queued": 8, "packs_in_progress": 1, "packs_completed": 42},
        attributes={"firmware_repo_status": "ONLINE"},
        dependencies={
            "registry_dependency": DependencyLink("S9", "Registry (S9) Pre-requisites Not Met"),
        },
        last_event_field="last_provisioned_at",
        seed_last_event="2026-01-16 16:45 IST",
        actions=(
            ActionRule(
                "START_SESSION",
                roles={Role.ENGINEERING, Role.SUPERVISOR},
                from_states={"IDLE"},
                to_state="PROVISIONING",
                role_reason="Requires Engineering/Sup Role",
                state_reason="Session Active or Complete",
                dependency="registry_dependency",
                preconditions=(
                    Precondition("firmware_repo_status", "Firmware Repo Offline", equals="ONLINE"),
                ),
                effects=transfer("packs_queued", "packs_in_progress"),
                message="Provisioning session started for next pack in queue",
            ),
            ActionRule(
                "FLASH_FIRMWARE",
                roles={Role.OPERATOR, Role.ENGINEERING},
                from_states={"PROVISIONING"},
                to_state="VERIFYING",
                role_reason="Requires Operator/Eng Role",
                state_reason="Not in Provisioning Mode",
                dependency="registry_dependency",
                message="Firmware flashed to BMS controller",
            ),
            ActionRule(
                "VERIFY_CONFIG",
                roles={Role.ENGINEERING, Role.QA_ENGINEER},
                from_states={"VERIFYING"},
                to_state="COMPLETED",
                role_reason="Requires Engineering/QA Role",
                state_reason="Flash Not Verified",
                dependency="registry_dependency",
                message="BMS configuration verified",
            ),
            ActionRule(
                "COMPLETE_PROVISIONING",
                roles={Role.SUPERVISOR, Role.ENGINEERING},
                from_states={"VERIFYING", "COMPLETED"},
                to_state="COMPLETED",
                role_reason="Requires Supervisor Signoff",
                state_reason="Validation Incomplete",
                dependency="registry_dependency",
                effects=transfer("packs_in_progress", "packs_completed"),
                stamps_event=True,
                message="Provisioning signed off, pack released to finished goods",
            ),
        ),
    )


def definitions() -> list[StageDefinition]:
    return [final_qa_registry(), bms_provisioning()]
