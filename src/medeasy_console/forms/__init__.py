"""Declarative form dispatch: rule table, transforms and the submission pipeline."""

from medeasy_console.forms.pipeline import SubmissionPipeline, SubmissionRequest, build_request
from medeasy_console.forms.registry import (
    DEFAULT_RULES,
    FormRuleRegistry,
    build_registry,
    load_form_rules,
)
from medeasy_console.forms.rules import FormRule, FormRuleError

__all__ = [
    "DEFAULT_RULES",
    "FormRule",
    "FormRuleError",
    "FormRuleRegistry",
    "SubmissionPipeline",
    "SubmissionRequest",
    "build_registry",
    "build_request",
    "load_form_rules",
]
