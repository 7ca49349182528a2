"""Interactive report state: one active finding and one active action.

``ReportSession`` is what an editing front end drives. Selecting a template
resets its values; every value update re-validates and recomputes the code
assignments for the active pair.
"""

from __future__ import annotations

from typing import Any, Mapping

from config.settings import NarrativeSettings
from proc_narrative.coder.code_assignment import (
    assign_codes,
    format_code_assignments,
    validate_code_compatibility,
)
from proc_narrative.common.rules_engine.conditions import evaluate_conditions
from proc_narrative.reporting.context import LoggerLike
from proc_narrative.reporting.template_library import AnyTemplate, TemplateLibrary
from proc_narrative.reporting.template_processor import generate
from proc_narrative.reporting.validation import validate
from proc_schemas.coding import CodeAssignment, FormattedCodes
from proc_schemas.templates import ActionTemplate, FindingTemplate


def versions_compatible(first: str, second: str) -> bool:
    return first.split(".", 1)[0] == second.split(".", 1)[0]


class ReportSession:
    def __init__(
        self,
        library: TemplateLibrary,
        *,
        settings: NarrativeSettings | None = None,
        logger: LoggerLike | None = None,
    ):
        self.library = library
        self.settings = settings
        self.logger = logger
        self.active_finding: FindingTemplate | None = None
        self.active_action: ActionTemplate | None = None
        self.finding_values: dict[str, Any] = {}
        self.action_values: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.code_assignments: list[CodeAssignment] = []
        self.code_errors: list[str] = []

    def _resolve(self, template: AnyTemplate | str | None, expected: type) -> Any:
        if template is None:
            return None
        resolved = self.library.get(template) if isinstance(template, str) else template
        if not isinstance(resolved, expected):
            raise TypeError(f"{resolved.id} is not a {expected.__name__}")
        return resolved

    def _active_templates(self) -> list[AnyTemplate]:
        return [t for t in (self.active_finding, self.active_action) if t is not None]

    def _refresh_codes(self, templates: list[AnyTemplate]) -> None:
        self.code_assignments = assign_codes(templates, {**self.finding_values, **self.action_values})
        self.code_errors = validate_code_compatibility(self.code_assignments).conflicts

    # -- selection -----------------------------------------------------------

    def select_finding(self, template: FindingTemplate | str | None) -> None:
        self.active_finding = self._resolve(template, FindingTemplate)
        self.finding_values = {}
        self.errors = {}
        self.code_assignments = []
        self.code_errors = []
        if self.active_finding is not None:
            self._refresh_codes([self.active_finding])

    def select_action(self, template: ActionTemplate | str | None) -> None:
        self.active_action = self._resolve(template, ActionTemplate)
        self.action_values = {}
        self.errors = {}
        self.code_assignments = []
        self.code_errors = []
        if self.active_action is not None and self.active_finding is not None:
            self._refresh_codes([self.active_finding, self.active_action])

    # -- values --------------------------------------------------------------

    def update_finding_values(self, values: Mapping[str, Any]) -> None:
        if self.active_finding is None:
            return
        result = validate(
            self.active_finding.variables,
            values,
            self.library.shared_pool(),
            settings=self.settings,
            logger=self.logger,
        )
        self.finding_values = dict(values)
        self.errors = result.errors
        self._refresh_codes(self._active_templates())

    def update_action_values(self, values: Mapping[str, Any]) -> None:
        if self.active_action is None:
            return
        result = validate(
            self.active_action.variables,
            values,
            self.library.shared_pool(),
            settings=self.settings,
            logger=self.logger,
        )
        self.action_values = dict(values)
        self.errors = result.errors
        if self.active_finding is not None:
            self._refresh_codes(self._active_templates())

    # -- queries -------------------------------------------------------------

    def available_actions(self) -> list[ActionTemplate]:
        actions: list[ActionTemplate] = self.library.list_by_type("action")  # type: ignore[assignment]
        finding = self.active_finding
        if finding is None:
            return [action for action in actions if action.standalone]

        available = []
        for action in actions:
            if action.standalone or not action.valid_for(finding.id):
                continue
            allowed = next((a for a in finding.allowed_actions if a.id == action.id), None)
            if allowed is None:
                if "*" in action.valid_for_findings:
                    available.append(action)
                continue
            if allowed.conditions and not evaluate_conditions(
                allowed.conditions, self.finding_values, logger=self.logger
            ):
                continue
            available.append(action)
        return available

    def suggested_next_actions(self) -> list[ActionTemplate]:
        """Next actions of the active action whose conditions hold."""
        action = self.active_action
        if action is None or not action.next_actions:
            return []
        values = {**self.finding_values, **self.action_values}
        suggested = []
        for next_action in action.next_actions:
            template = self.library.maybe_get(next_action.id)
            if not isinstance(template, ActionTemplate):
                continue
            if next_action.conditions and not evaluate_conditions(next_action.conditions, values, logger=self.logger):
                continue
            suggested.append(template)
        return suggested

    def generate_text(self) -> str:
        pool = self.library.shared_pool()
        texts = []
        if self.active_finding is not None:
            texts.append(
                generate(
                    self.active_finding.template,
                    self.finding_values,
                    self.active_finding.variables,
                    pool,
                    settings=self.settings,
                    logger=self.logger,
                )
            )
        if self.active_action is not None:
            texts.append(
                generate(
                    self.active_action.template,
                    self.action_values,
                    self.active_action.variables,
                    pool,
                    settings=self.settings,
                    logger=self.logger,
                )
            )
        return "\n".join(texts)

    def active_template_version(self) -> str | None:
        return self.active_finding.version if self.active_finding is not None else None

    def templates_compatible(self) -> bool:
        if self.active_finding is None or self.active_action is None:
            return True
        return versions_compatible(self.active_finding.version, self.active_action.version)

    def assigned_codes(self) -> FormattedCodes:
        return format_code_assignments(self.code_assignments)


__all__ = ["ReportSession", "versions_compatible"]
