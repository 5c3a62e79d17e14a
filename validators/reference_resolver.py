"""Cross-reference resolution within one skill.

Checks that workflow steps, intent workflow mappings and approval rules
point at things that exist, detects duplicate ids across five entity kinds,
warns about intents with no visible fulfilment and reports cycles between
workflows.

The skill document is never modified. Resolution state is returned as a
`ResolutionMap` side-table.
"""

import re
from typing import Any, Dict, List, Optional, Set

from loguru import logger

from contracts import (
    Issue,
    Unresolved,
    ResolutionMap,
    ReferenceResolution,
    error,
    warning,
    is_system_tool,
)
from config import settings
from validators.document import as_dict, as_list, dicts, require_mapping
from validators.graph import find_cycles


INTENT_KEYWORD_SPLIT = re.compile(r"[_\-.]")
MIN_KEYWORD_LENGTH = 3


class ToolIndex:
    """Lookup of every name a step or rule may use to reference a tool."""

    def __init__(self, skill: Dict[str, Any]):
        self.ids: Set[str] = set()
        self.names: Set[str] = set()  # lowercased
        for tool in dicts(skill.get("tools")) + dicts(skill.get("meta_tools")):
            if isinstance(tool.get("id"), str) and tool["id"]:
                self.ids.add(tool["id"])
            if isinstance(tool.get("name"), str) and tool["name"]:
                self.names.add(tool["name"].lower())

    def resolves(self, ref: Any) -> bool:
        """True if ref names a tool id, tool name (any case), meta-tool or system tool."""
        if not isinstance(ref, str) or not ref:
            return False
        return ref in self.ids or ref.lower() in self.names or is_system_tool(ref)

    def name_blob(self) -> str:
        """All known tool names joined for keyword containment checks."""
        return " ".join(sorted(self.names))


def _workflow_key(workflow: Dict[str, Any], index: int) -> str:
    workflow_id = workflow.get("id")
    return workflow_id if isinstance(workflow_id, str) and workflow_id else f"workflows[{index}]"


def _workflow_ids(skill: Dict[str, Any]) -> Set[str]:
    policy = as_dict(skill.get("policy"))
    return {
        w["id"] for w in dicts(policy.get("workflows"))
        if isinstance(w.get("id"), str) and w["id"]
    }


def _check_workflow_steps(
    workflows: List[Dict[str, Any]],
    tools: ToolIndex,
    workflow_ids: Set[str],
    resolution: ResolutionMap,
    unresolved: Unresolved,
) -> List[Issue]:
    issues = []
    for wi, workflow in enumerate(workflows):
        key = _workflow_key(workflow, wi)
        for si, step in enumerate(as_list(workflow.get("steps"))):
            # A step may call another workflow; cycles are checked separately
            resolved = tools.resolves(step) or (isinstance(step, str) and step in workflow_ids)
            resolution.steps[ResolutionMap.step_key(key, si)] = resolved
            if not resolved:
                unresolved.add_tool(str(step))
                issues.append(warning(
                    "TOOL_NOT_FOUND",
                    f"policy.workflows[{wi}].steps[{si}]",
                    f'Tool "{step}" not found',
                    f'Define tool "{step}" or remove from workflow',
                ))
    return issues


def _check_intent_mappings(
    intents: List[Dict[str, Any]],
    workflow_ids: Set[str],
    resolution: ResolutionMap,
    unresolved: Unresolved,
) -> List[Issue]:
    issues = []
    for ii, intent in enumerate(intents):
        key = intent.get("id") if isinstance(intent.get("id"), str) and intent.get("id") else f"intents[{ii}]"
        target = intent.get("maps_to_workflow")
        if not target:
            # Nothing referenced, nothing to resolve
            resolution.intents[key] = True
            continue
        resolved = isinstance(target, str) and target in workflow_ids
        resolution.intents[key] = resolved
        if not resolved:
            unresolved.add_workflow(str(target))
            issues.append(warning(
                "WORKFLOW_NOT_FOUND",
                f"intents.supported[{ii}].maps_to_workflow",
                f'Workflow "{target}" not found',
                f'Define workflow "{target}" or remove mapping',
            ))
    return issues


def _check_approvals(
    approvals: List[Dict[str, Any]],
    tools: ToolIndex,
    resolution: ResolutionMap,
    unresolved: Unresolved,
) -> List[Issue]:
    issues = []
    for ri, rule in enumerate(approvals):
        tool_id = rule.get("tool_id")
        if not tool_id:
            # Missing tool_id is a schema error, not a dangling reference
            continue
        key = rule.get("id") if isinstance(rule.get("id"), str) and rule.get("id") else f"approvals[{ri}]"
        resolved = tools.resolves(tool_id)
        resolution.approvals[key] = resolved
        if not resolved:
            unresolved.add_tool(str(tool_id))
            issues.append(warning(
                "TOOL_NOT_FOUND",
                f"policy.approvals[{ri}].tool_id",
                f'Tool "{tool_id}" not found for approval rule',
                f'Define tool "{tool_id}" or update the approval rule',
            ))
    return issues


def _find_duplicates(
    items: List[Dict[str, Any]],
    field: str,
    code: str,
    path_template: str,
    label: str,
    suggestion: str,
    severity_error: bool = True,
    fold_case: bool = False,
) -> List[Issue]:
    """Single linear scan with a seen-set; each duplicated value is reported once, at its first repeat."""
    issues = []
    seen: Set[Any] = set()
    reported: Set[Any] = set()
    build = error if severity_error else warning
    for index, item in enumerate(items):
        value = item.get(field)
        if value is None or value == "" or not isinstance(value, (str, int)):
            continue
        folded = value.lower() if fold_case and isinstance(value, str) else value
        if folded in seen and folded not in reported:
            reported.add(folded)
            issues.append(build(
                code,
                path_template.format(index=index),
                f'Duplicate {label}: "{value}"',
                suggestion,
            ))
        seen.add(folded)
    return issues


def _check_duplicates(skill: Dict[str, Any], workflows, intents) -> List[Issue]:
    tools = dicts(skill.get("tools"))
    issues = []
    issues.extend(_find_duplicates(
        tools, "id", "DUPLICATE_TOOL_ID", "tools[{index}].id", "tool ID",
        "Each tool must have a unique ID",
    ))
    issues.extend(_find_duplicates(
        tools, "name", "DUPLICATE_TOOL_NAME", "tools[{index}].name", "tool name",
        "Tool names should be unique for clarity", severity_error=False, fold_case=True,
    ))
    issues.extend(_find_duplicates(
        workflows, "id", "DUPLICATE_WORKFLOW_ID", "policy.workflows[{index}].id", "workflow ID",
        "Each workflow must have a unique ID",
    ))
    issues.extend(_find_duplicates(
        intents, "id", "DUPLICATE_INTENT_ID", "intents.supported[{index}].id", "intent ID",
        "Each intent must have a unique ID",
    ))
    issues.extend(_find_duplicates(
        dicts(skill.get("scenarios")), "id", "DUPLICATE_SCENARIO_ID", "scenarios[{index}].id", "scenario ID",
        "Each scenario must have a unique ID",
    ))
    return issues


def intent_keywords(intent_id: str) -> List[str]:
    """Keywords used by the connectivity heuristic: split on _ - . and keep length >= 3."""
    return [k for k in INTENT_KEYWORD_SPLIT.split(intent_id.lower()) if len(k) >= MIN_KEYWORD_LENGTH]


def _check_intent_connectivity(
    intents: List[Dict[str, Any]],
    workflows: List[Dict[str, Any]],
    workflow_ids: Set[str],
    tools: ToolIndex,
    unresolved: Unresolved,
) -> List[Issue]:
    """Warn about intents that nothing visibly fulfils.

    An intent counts as connected when its maps_to_workflow resolves, a
    workflow's trigger equals its id, or one of its id keywords occurs
    inside any tool name. Loose on purpose: authors react to the warning.
    """
    issues = []
    triggers = {w["trigger"] for w in workflows if isinstance(w.get("trigger"), str) and w["trigger"]}
    blob = tools.name_blob()

    for i, intent in enumerate(intents):
        intent_id = intent.get("id")
        if not isinstance(intent_id, str) or not intent_id:
            continue
        target = intent.get("maps_to_workflow")
        if isinstance(target, str) and target in workflow_ids:
            continue
        if intent_id in triggers:
            continue
        if any(keyword in blob for keyword in intent_keywords(intent_id)):
            continue

        unresolved.add_intent(intent_id)
        issues.append(warning(
            "INTENT_NO_TOOLS",
            f"intents.supported[{i}]",
            f'Intent "{intent_id}" has no mapped workflow and no obviously related tools',
            f'Add maps_to_workflow, create a workflow with trigger "{intent_id}", '
            "or ensure tool names relate to this intent",
        ))
    return issues


def _check_workflow_cycles(workflows: List[Dict[str, Any]], workflow_ids: Set[str]) -> List[Issue]:
    """Report each distinct cycle in the workflow -> sub-workflow graph."""
    graph: Dict[str, List[str]] = {}
    for workflow in workflows:
        workflow_id = workflow.get("id")
        if not isinstance(workflow_id, str) or not workflow_id or workflow_id in graph:
            continue
        refs: List[str] = []
        for step in as_list(workflow.get("steps")):
            if isinstance(step, str) and step in workflow_ids and step != workflow_id and step not in refs:
                refs.append(step)
        graph[workflow_id] = refs

    return [
        error(
            "WORKFLOW_CIRCULAR",
            "policy.workflows",
            f"Circular workflow reference detected: {' → '.join(cycle)}",
            "Remove the circular dependency between workflows",
            cycle=cycle,
        )
        for cycle in find_cycles(graph, limit=settings.max_cycle_reports)
    ]


def resolve_references(skill: Dict[str, Any], unresolved: Optional[Unresolved] = None) -> ReferenceResolution:
    """Resolve every cross-reference in a skill.

    Dangling references are warnings (export readiness is the hard gate);
    duplicate ids and workflow cycles are errors.

    Args:
        skill: Skill document, left untouched
        unresolved: Optional accumulator filled with dangling refs (deduplicated)

    Returns:
        ReferenceResolution with issues, resolution map and unresolved refs

    Raises:
        TypeError: If skill is not a mapping
    """
    require_mapping(skill, "skill")
    unresolved = unresolved if unresolved is not None else Unresolved()
    resolution = ResolutionMap()

    tools = ToolIndex(skill)
    policy = as_dict(skill.get("policy"))
    workflows = dicts(policy.get("workflows"))
    approvals = dicts(policy.get("approvals"))
    intents = dicts(as_dict(skill.get("intents")).get("supported"))
    workflow_ids = _workflow_ids(skill)

    issues: List[Issue] = []
    issues.extend(_check_workflow_steps(workflows, tools, workflow_ids, resolution, unresolved))
    issues.extend(_check_intent_mappings(intents, workflow_ids, resolution, unresolved))
    issues.extend(_check_approvals(approvals, tools, resolution, unresolved))
    issues.extend(_check_duplicates(skill, workflows, intents))
    issues.extend(_check_intent_connectivity(intents, workflows, workflow_ids, tools, unresolved))
    issues.extend(_check_workflow_cycles(workflows, workflow_ids))

    logger.debug(
        "Reference check for {skill_id}: {count} issue(s), {tools} unresolved tool(s)",
        skill_id=skill.get("id"),
        count=len(issues),
        tools=len(unresolved.tools),
    )
    return ReferenceResolution(issues=issues, resolution=resolution, unresolved=unresolved)


def are_all_references_resolved(resolution: ResolutionMap) -> bool:
    """True when the resolution map holds no unresolved reference."""
    return resolution.all_resolved()


def get_unresolved_tool_refs(skill: Dict[str, Any]) -> List[str]:
    """Tool references from workflow steps and approval rules that resolve to nothing."""
    return resolve_references(skill).unresolved.tools


def get_unresolved_workflow_refs(skill: Dict[str, Any]) -> List[str]:
    """Workflow references from intents that resolve to nothing."""
    return resolve_references(skill).unresolved.workflows
