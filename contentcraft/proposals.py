"""
contentcraft/proposals.py -- Resolution proposals for geometry conflicts.

Every :class:`~contentcraft.geometry.GeometryConflict` gets exactly one
:class:`GeometryProposal`: a question for the author, a fixed list of
options that always ends in ``"Custom"``, a sentence describing what the
choice affects, and (for known conflict types) the option to pre-select.

Proposal generation never fails.  Unknown conflict types get the generic
template.

Usage::

    from contentcraft.proposals import GeometryProposalGenerator

    proposals = GeometryProposalGenerator().propose(conflicts)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from contentcraft.geometry import GeometryConflict, Severity

logger = logging.getLogger(__name__)

CUSTOM_OPTION = "Custom"


class GeometryProposal(BaseModel):
    """A question offering ways to resolve one geometry conflict."""

    model_config = ConfigDict(extra="forbid")

    conflict_id: str
    question: str
    options: list[str]
    rule_impact: str
    field_path: Optional[str] = None
    severity: Severity
    auto_fix_suggestion: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class _Template:
    """Fixed wording for one conflict type."""

    __slots__ = ("question", "options", "rule_impact", "auto_fix")

    def __init__(
        self,
        question: Callable[[GeometryConflict], str],
        options: list[str],
        rule_impact: str,
        auto_fix: Callable[[GeometryConflict], Optional[str]],
    ):
        self.question = question
        self.options = options
        self.rule_impact = rule_impact
        self.auto_fix = auto_fix


def _fixed(option: Optional[str]) -> Callable[[GeometryConflict], Optional[str]]:
    return lambda conflict: option


_TEMPLATES: dict[str, _Template] = {
    "disconnected": _Template(
        question=lambda c: (
            "How should we handle disconnected spaces: "
            f"{', '.join(c.affected_spaces or []) or 'multiple spaces'}?"
        ),
        options=[
            "Add hallways to connect them",
            "Add doors between adjacent spaces",
            "Leave disconnected (separate areas)",
            "Remove disconnected spaces",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects connectivity and navigation paths",
        auto_fix=_fixed("Add hallways to connect them"),
    ),
    "dimension_mismatch": _Template(
        question=lambda c: f"{c.description} - How should we proceed?",
        options=[
            "Add missing dimensions with default values",
            "Use parent structure dimensions",
            "Prompt for specific dimensions",
            "Skip geometry validation",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects spatial layout and validation accuracy",
        auto_fix=lambda c: (
            "Prompt for specific dimensions" if c.blocking
            else "Add missing dimensions with default values"
        ),
    ),
    "impossible_connection": _Template(
        question=lambda c: (
            f"Impossible connection detected: {c.description}. How should we resolve this?"
        ),
        options=[
            "Remove the impossible connection",
            "Adjust space positions to make it possible",
            "Convert to a narrative-only connection",
            "Add intermediate connecting space",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects structural integrity and physical possibility",
        auto_fix=_fixed("Add intermediate connecting space"),
    ),
    "missing_support": _Template(
        question=lambda c: f"Missing structural support: {c.description}. How should we fix this?",
        options=[
            "Add the missing locking point",
            "Reference a different existing locking point",
            "Remove this structural reference",
            "Convert to free-standing structure",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects structural validation and consistency",
        auto_fix=_fixed("Add the missing locking point"),
    ),
    "vertical_misalignment": _Template(
        question=lambda c: f"Vertical alignment issue: {c.description}. What should we do?",
        options=[
            "Add the missing floor level",
            "Move space to existing floor",
            "Remove floor level reference (single-level location)",
            "Adjust all floor numbering",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects vertical structure and floor organization",
        auto_fix=_fixed("Move space to existing floor"),
    ),
    "overlap": _Template(
        question=lambda c: f"Space overlap detected: {c.description}. How should we resolve?",
        options=[
            "Adjust positions to eliminate overlap",
            "Reduce dimensions to fit",
            "Convert to nested spaces (one inside other)",
            "Mark as abstract/narrative layout",
            CUSTOM_OPTION,
        ],
        rule_impact="Affects physical layout and dimensional accuracy",
        auto_fix=_fixed("Adjust positions to eliminate overlap"),
    ),
}

_GENERIC_TEMPLATE = _Template(
    question=lambda c: f"Geometry conflict detected: {c.description}. How should we proceed?",
    options=["Auto-fix if possible", "Skip validation", "Manual correction needed", CUSTOM_OPTION],
    rule_impact="Affects geometry validation",
    auto_fix=_fixed(None),
)


class GeometryProposalGenerator:
    """Maps geometry conflicts to resolution proposals."""

    def propose(self, conflicts: list[GeometryConflict]) -> list[GeometryProposal]:
        """Return one proposal per conflict, in the same order.

        ``conflict_id`` is ``"conflict_<index>"`` where *index* is the
        conflict's position in *conflicts*.
        """
        proposals = [self.propose_one(conflict, index) for index, conflict in enumerate(conflicts)]
        logger.debug("Generated %d geometry proposal(s)", len(proposals))
        return proposals

    def propose_one(self, conflict: GeometryConflict, index: int) -> GeometryProposal:
        template = _TEMPLATES.get(conflict.type, _GENERIC_TEMPLATE)
        return GeometryProposal(
            conflict_id=f"conflict_{index}",
            question=template.question(conflict),
            options=list(template.options),
            rule_impact=template.rule_impact,
            field_path=conflict.field_path,
            severity=conflict.severity,
            auto_fix_suggestion=template.auto_fix(conflict),
        )


def generate_geometry_proposals(conflicts: list[GeometryConflict]) -> list[GeometryProposal]:
    """Module-level shortcut for :meth:`GeometryProposalGenerator.propose`."""
    return GeometryProposalGenerator().propose(conflicts)
