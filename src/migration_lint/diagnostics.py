"""Diagnostic records and message templates for the resolver rule."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from migration_lint.settings import Severity

if TYPE_CHECKING:
    from collections.abc import Mapping

    from migration_lint.fixes import Fix
    from migration_lint.syntax import Span

__all__ = [
    "MESSAGES",
    "RULE_ID",
    "Diagnostic",
    "MessageKind",
    "format_message",
]

RULE_ID: Final[str] = "enforce-contentful-cloudinary-graphql-field-resolver"

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class MessageKind(StrEnum):
    """Message identifiers, matching the rule's ``messageId`` values."""

    MISSING_PARAMETERS = "missingParameters"
    MISSING_ANNOTATION = "missingAnnotation"
    MISSING_IDS_IN_CONFIG = "missingIdsInConfig"


MESSAGES: Final[Mapping[MessageKind, str]] = {
    MessageKind.MISSING_PARAMETERS: (
        "The 'Contentful:GraphQLFieldResolver' annotation must have a second argument "
        "with a 'parameters' object containing 'appFunctionId' and 'appDefinitionId'."
    ),
    MessageKind.MISSING_ANNOTATION: (
        "Object field '{{ fieldName }}' is missing the 'setAnnotations' call for the GraphQL resolver."
    ),
    MessageKind.MISSING_IDS_IN_CONFIG: (
        "Rule configuration is missing 'appFunctionId' or 'appDefinitionId'. Cannot fix."
    ),
}


def format_message(template: str, data: Mapping[str, str]) -> str:
    """Substitute ``{{ name }}`` placeholders; unknown names are left as written."""
    return _PLACEHOLDER.sub(lambda match: data.get(match.group(1), match.group(0)), template)


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One reported problem, optionally carrying a fix."""

    kind: MessageKind
    span: Span
    data: dict[str, str] = field(default_factory=dict)
    fix: Fix | None = None
    severity: Severity = Severity.ERROR
    rule_id: str = RULE_ID

    @property
    def message(self) -> str:
        return format_message(MESSAGES[self.kind], self.data)

    @property
    def line(self) -> int:
        return self.span.line

    @property
    def column(self) -> int:
        return self.span.column

    def to_dict(self) -> dict[str, object]:
        """Return the message shape used by ESLint's JSON formatter."""
        payload: dict[str, object] = {
            "ruleId": self.rule_id,
            "severity": 2 if self.severity is Severity.ERROR else 1,
            "message": self.message,
            "messageId": self.kind.value,
            "line": self.line,
            "column": self.column,
        }
        if self.fix is not None:
            payload["fix"] = self.fix.to_dict()
        return payload
