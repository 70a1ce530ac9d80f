#!/usr/bin/env python3
"""
Bottle Reconciliation Plan
Computes the minimal set of tool changes that moves a state to a manifest
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from bottle_manager.manifest.bottle import BottleManifest
from bottle_manager.manifest.state import BottleState
from bottle_manager.manifest.version import Ordering, compare_versions


@dataclass
class ReconciliationPlan:
    """
    Per-tool actions, each list sorted by tool name.

    add:       (tool, version)
    remove:    tool
    upgrade:   (tool, from_version, to_version)
    downgrade: (tool, from_version, to_version)
    unchanged: (tool, version)
    """
    add: List[Tuple[str, str]] = field(default_factory=list)
    remove: List[str] = field(default_factory=list)
    upgrade: List[Tuple[str, str, str]] = field(default_factory=list)
    downgrade: List[Tuple[str, str, str]] = field(default_factory=list)
    unchanged: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.add or self.remove or self.upgrade or self.downgrade)

    def tool_names(self) -> Set[str]:
        """Every tool mentioned anywhere in the plan"""
        names = {name for name, _ in self.add}
        names.update(self.remove)
        names.update(name for name, _, _ in self.upgrade)
        names.update(name for name, _, _ in self.downgrade)
        names.update(name for name, _ in self.unchanged)
        return names

    def change_count(self) -> int:
        return len(self.add) + len(self.remove) + len(self.upgrade) + len(self.downgrade)


def calculate_plan(current: Optional[BottleState], target: BottleManifest) -> ReconciliationPlan:
    """
    Diff the installed tools of `current` against the pinned tools of `target`.

    Args:
        current: Installed state, or None when nothing is installed yet
        target: Manifest to reconcile towards

    Returns:
        ReconciliationPlan with disjoint, name-sorted lists
    """
    current_tools = current.tools if current is not None else {}
    current_names = set(current_tools)
    target_names = set(target.tools)

    plan = ReconciliationPlan()

    for name in target_names - current_names:
        plan.add.append((name, target.tools[name]))

    for name in current_names - target_names:
        plan.remove.append(name)

    for name in current_names & target_names:
        installed = current_tools[name].version
        wanted = target.tools[name]
        ordering = compare_versions(installed, wanted)
        if ordering is Ordering.EQUAL:
            plan.unchanged.append((name, installed))
        elif ordering is Ordering.LESS:
            plan.upgrade.append((name, installed, wanted))
        else:
            plan.downgrade.append((name, installed, wanted))

    plan.add.sort()
    plan.remove.sort()
    plan.upgrade.sort()
    plan.downgrade.sort()
    plan.unchanged.sort()
    return plan
