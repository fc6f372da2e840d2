"""
Governance stages: S15 Compliance & ESG, S16 Audit & Governance, S17 Closure & Archive.
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


def compliance_esg() -> StageDefinition:
    compliance = {Role.COMPLIANCE}
    gate = "circular_dependency"
    return StageDefinition(
        stage_id="S15",
        title="Compliance & ESG",
        status_field="compliance_status",
        states=("IDLE", "READY", "NEEDS_EVIDENCE", "SUBMITTED"),
        initial_status="NEEDS_EVIDENCE",
        cleared_states={"SUBMITTED"},
        counters={"compliance_snapshots": 12, "missing_evidence": 3},
        attributes={"esg_score_preview": 88, "carbon_footprint_kg_co2e": 4250},
        dependencies={gate: DependencyLink("S14", "S14 Circular Process Incomplete")},
        interlocks=(
            Interlock(
                "status",
                {"SUBMITTED"},
                "Report Already Submitted",
                exempt={"VIEW_COMPLIANCE_SNAPSHOT"},
            ),
        ),
        last_event_field="last_compliance_run_at",
        seed_last_event="2026-01-16 18:30 IST",
        actions=(
            ActionRule(
                "VIEW_COMPLIANCE_SNAPSHOT",
                message="Compliance snapshot viewed",
            ),
            ActionRule(
                "GENERATE_SNAPSHOT",
                roles={Role.COMPLIANCE, Role.SUSTAINABILITY},
                from_states={"IDLE"},
                to_state="NEEDS_EVIDENCE",
                role_reason="Requires Compliance/ESG Role",
                state_reason="Snapshot already active",
                dependency=gate,
                effects=(CounterEffect("compliance_snapshots", 1),),
                stamps_event=True,
                message="Compliance snapshot generated",
            ),
            ActionRule(
                "REQUEST_MISSING_EVIDENCE",
                roles=compliance,
                from_states={"NEEDS_EVIDENCE"},
                role_reason="Requires Compliance Role",
                state_reason="No evidence pending",
                dependency=gate,
                message="Missing evidence requested from stage owners",
            ),
            ActionRule(
                "MARK_EVIDENCE_COLLECTED",
                roles=compliance,
                from_states={"NEEDS_EVIDENCE"},
                to_state="READY",
                role_reason="Requires Compliance Role",
                state_reason="No evidence pending",
                dependency=gate,
                effects=(CounterEffect("missing_evidence", -1),),
                message="Evidence collected, report ready",
            ),
            ActionRule(
                "SUBMIT_COMPLIANCE_REPORT",
                roles={Role.COMPLIANCE, Role.MANAGEMENT},
                from_states={"READY"},
                to_state="SUBMITTED",
                role_reason="Requires Compliance/Director",
                state_reason="Report not ready",
                dependency=gate,
                stamps_event=True,
                message="Compliance report submitted to regulator",
            ),
        ),
    )


def audit_governance() -> StageDefinition:
    auditors = {Role.MANAGEMENT, Role.COMPLIANCE}
    return StageDefinition(
        stage_id="S16",
        title="Audit & Governance",
        status_field="audit_status",
        states=("IDLE", "REVIEWING", "FINDINGS", "RESOLVED", "CLOSED"),
        initial_status="REVIEWING",
        cleared_states={"CLOSED"},
        counters={
            "audits_open": 2,
            "audits_closed": 15,
            "findings_open": 4,
            "findings_resolved": 32,
        },
        dependencies={
            "compliance_dependency": DependencyLink("S15", "Compliance Report (S15) Missing"),
        },
        last_event_field="last_audit_reviewed_at",
        seed_last_event="2026-01-17 09:30 IST",
        actions=(
            ActionRule(
                "START_AUDIT_REVIEW",
                roles=auditors,
                from_states={"IDLE", "CLOSED"},
                to_state="REVIEWING",
                role_reason="Requires Auditor Role",
                state_reason="Audit already active",
                dependency="compliance_dependency",
                effects=(CounterEffect("audits_open", 1),),
                stamps_event=True,
                message="Audit review started",
            ),
            ActionRule(
                "RAISE_FINDING",
                roles=auditors,
                from_states={"REVIEWING"},
                to_state="FINDINGS",
                role_reason="Requires Auditor Role",
                state_reason="Not in Review phase",
                effects=(CounterEffect("findings_open", 1),),
                message="Audit finding raised: {notes}",
            ),
            ActionRule(
                "MARK_FINDING_RESOLVED",
                roles={Role.COMPLIANCE},
                from_states={"FINDINGS"},
                to_state="RESOLVED",
                role_reason="Requires Compliance Officer",
                state_reason="No active findings",
                effects=transfer("findings_open", "findings_resolved"),
                message="Audit finding resolved",
            ),
            ActionRule(
                "CLOSE_AUDIT",
                roles={Role.MANAGEMENT},
                from_states={"RESOLVED"},
                to_state="CLOSED",
                role_reason="Requires Director Signoff",
                state_reason="Findings not resolved",
                effects=transfer("audits_open", "audits_closed"),
                stamps_event=True,
                message="Audit closed",
            ),
            ActionRule(
                "EXPORT_AUDIT_PACK",
                roles=auditors,
                from_states={"REVIEWING", "FINDINGS", "RESOLVED", "CLOSED"},
                role_reason="Requires Auditor Role",
                state_reason="No audit data generated",
                message="Audit pack exported",
            ),
        ),
    )


def closure_archive() -> StageDefinition:
    compliance = {Role.COMPLIANCE}
    return StageDefinition(
        stage_id="S17",
        title="Closure & Archive",
        status_field="closure_status",
        states=("IDLE", "READY", "ARCHIVING", "ARCHIVED"),
        initial_status="IDLE",
        cleared_states={"ARCHIVED"},
        counters={
            "records_ready_to_archive": 1540,
            "records_archived": 12500,
            "archive_batches": 42,
        },
        dependencies={"audit_dependency": DependencyLink("S16", "Audit (S16) Not Cleared")},
        last_event_field="last_archive_at",
        seed_last_event="2026-01-10 23:00 IST",
        actions=(
            ActionRule(
                "PREPARE_ARCHIVE",
                roles=compliance,
                from_states={"IDLE"},
                to_state="READY",
                role_reason="Requires Compliance Role",
                state_reason="Preparation already done",
                dependency="audit_dependency",
                message="Archive batch prepared",
            ),
            ActionRule(
                "START_ARCHIVE",
                roles=compliance,
                from_states={"READY"},
                to_state="ARCHIVING",
                role_reason="Requires Compliance Role",
                state_reason="Not Ready for Archival",
                message="Archival started",
            ),
            ActionRule(
                "COMPLETE_ARCHIVE",
                roles=compliance,
                from_states={"ARCHIVING"},
                to_state="ARCHIVED",
                role_reason="Requires Compliance Role",
                state_reason="Archiving not in progress",
                effects=(
                    CounterEffect("archive_batches", 1),
                    *transfer("records_ready_to_archive", "records_archived"),
                ),
                stamps_event=True,
                message="Archive batch sealed",
            ),
            ActionRule(
                "EXPORT_CLOSURE_PACKAGE",
                roles={Role.MANAGEMENT, Role.COMPLIANCE},
                from_states={"ARCHIVED"},
                role_reason="Requires Mgmt/Compliance",
                state_reason="Not Archived",
                message="Closure package exported",
            ),
            ActionRule(
                "CLOSE_PROGRAM",
                roles={Role.MANAGEMENT},
                from_states={"ARCHIVED"},
                role_reason="Requires Plant Director",
                state_reason="Archive Incomplete",
                message="Program closed by {role}",
            ),
        ),
    )


def definitions() -> list[StageDefinition]:
    return [compliance_esg(), audit_governance(), closure_archive()]
