"""
Cross-stage dependency resolution for Stage Gate.

A downstream stage never decides its own dependency flags. Each flag is
owned by the upstream stage named in the downstream definition's
DependencyLink and is OK exactly when the upstream status is one of the
upstream stage's cleared states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .stage_contract import StageContractRegistry, StageDefinition, get_contract_registry
from .stage_state import DependencyState, StageContext

logger = logging.getLogger(__name__)


def dependency_state(
    upstream_definition: StageDefinition,
    upstream_context: StageContext,
) -> DependencyState:
    """
    Derive a dependency flag from an upstream stage's real context.

    Args:
        upstream_definition: Definition of the upstream stage
        upstream_context: Current context of the upstream stage

    Returns:
        OK when the upstream status is cleared, BLOCKED otherwise
    """
    if upstream_context.status in upstream_definition.cleared_states:
        return DependencyState.OK
    return DependencyState.BLOCKED


@dataclass(frozen=True)
class DependencyChange:
    """One dependency flag that changed during apply()."""
    stage_id: str
    field: str
    old: DependencyState | None
    new: DependencyState


class DependencyResolver:
    """Computes downstream dependency flags from upstream contexts."""

    def __init__(self, registry: StageContractRegistry | None = None):
        self.registry = registry or get_contract_registry()

    def upstream_of(self, stage_id: str) -> list[tuple[str, str]]:
        """
        List the dependency links of a stage.

        Returns:
            (dependency field, upstream stage id) pairs
        """
        definition = self.registry.get_contract(stage_id)
        return [(name, link.upstream_stage) for name, link in definition.dependencies.items()]

    def downstream_of(self, stage_id: str) -> list[tuple[str, str]]:
        """
        List the stages that depend on a stage.

        Returns:
            (downstream stage id, dependency field) pairs
        """
        key = self.registry.get_contract(stage_id).stage_id
        return [
            (definition.stage_id, name)
            for definition in self.registry.get_all_contracts().values()
            for name, link in definition.dependencies.items()
            if link.upstream_stage == key
        ]

    def resolve(
        self, contexts: Mapping[str, StageContext]
    ) -> dict[str, dict[str, DependencyState]]:
        """
        Derive every dependency flag whose upstream context is available.

        Args:
            contexts: Stage id -> current context

        Returns:
            Downstream stage id -> {dependency field: state}
        """
        resolved: dict[str, dict[str, DependencyState]] = {}
        for stage_id in contexts:
            flags: dict[str, DependencyState] = {}
            for name, upstream_id in self.upstream_of(stage_id):
                upstream_context = contexts.get(upstream_id)
                if upstream_context is None:
                    continue
                flags[name] = dependency_state(
                    self.registry.get_contract(upstream_id), upstream_context
                )
            if flags:
                resolved[stage_id] = flags
        return resolved

    def apply(self, contexts: Mapping[str, StageContext]) -> list[DependencyChange]:
        """
        Write derived flags into the downstream contexts.

        Args:
            contexts: Stage id -> current context (mutated in place)

        Returns:
            Flags whose value changed
        """
        changes: list[DependencyChange] = []
        for stage_id, flags in self.resolve(contexts).items():
            context = contexts[stage_id]
            for name, state in flags.items():
                old = context.dependencies.get(name)
                if old == state:
                    continue
                context.dependencies[name] = state
                changes.append(DependencyChange(stage_id, name, old, state))
                logger.info("Dependency %s.%s: %s -> %s", stage_id, name,
                            old.value if old else None, state.value)
        return changes
