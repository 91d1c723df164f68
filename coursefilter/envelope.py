"""
Envelope codec.

The catalog backend wraps its data in an action envelope:

    {"actions": [{"returnValue": {"returnValue": {"courses": [...], ...}}, ...}, ...]}

Only the `courses` array of the first action is ours to touch. Everything
else is copied structurally (shallow dict merges), so unrelated keys keep
their order and values when the document is serialised again.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable

from coursefilter.errors import MalformedEnvelope, MissingCourseData

Course = dict[str, Any]
Transform = Callable[[list[Course]], list[Course]]


def serialize(document: Any) -> str:
    """Compact JSON, same shape as the backend sends it."""
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"))


def _child(obj: Any, key: str) -> Any:
    if not isinstance(obj, dict) or key not in obj:
        raise MissingCourseData(f"envelope has no {key!r}")
    return obj[key]


@dataclass(frozen=True)
class EnvelopeView:
    """
    Typed view on a course-bearing envelope.

    Build it with EnvelopeView.parse(); the constructor path never yields a
    half-valid view.
    """

    document: dict[str, Any]
    first_action: dict[str, Any]
    rest_actions: list[Any]
    data: dict[str, Any]
    courses: list[Course]

    @classmethod
    def parse(cls, text: str) -> "EnvelopeView":
        """
        Raises:
            MalformedEnvelope: text is not JSON, or not shaped like an envelope
            MissingCourseData: a valid envelope without a course list
        """
        try:
            document = json.loads(text)
        except ValueError as e:
            raise MalformedEnvelope(f"response body is not JSON: {e}") from e

        if not isinstance(document, dict):
            raise MalformedEnvelope("envelope is not a JSON object")

        actions = _child(document, "actions")
        if not isinstance(actions, list):
            raise MalformedEnvelope("'actions' is not a list")
        if not actions:
            raise MissingCourseData("envelope has no actions")

        first, rest = actions[0], actions[1:]
        data = _child(_child(first, "returnValue"), "returnValue")
        courses = _child(data, "courses")
        if courses is None:
            raise MissingCourseData("'courses' is null")
        if not isinstance(courses, list):
            raise MalformedEnvelope("'courses' is not a list")

        return cls(document=document, first_action=first, rest_actions=rest, data=data, courses=courses)

    def with_courses(self, courses: list[Course]) -> dict[str, Any]:
        """Return a new document with only the course list replaced."""
        outer = self.first_action["returnValue"]
        action = {
            **self.first_action,
            "returnValue": {
                **outer,
                "returnValue": {**self.data, "courses": courses},
            },
        }
        return {**self.document, "actions": [action, *self.rest_actions]}


def rewrite_courses(text: str, transform: Transform) -> str:
    """
    Apply `transform` to the course list of an envelope and re-serialise.

    Envelopes without a course list are returned unchanged (same string).
    MalformedEnvelope is left to the caller, who must then emit `text` as-is.
    """
    try:
        view = EnvelopeView.parse(text)
    except MissingCourseData:
        return text

    return serialize(view.with_courses(transform(list(view.courses))))
