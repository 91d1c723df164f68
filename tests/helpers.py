"""
Shared fixtures for the test modules.
"""

from __future__ import annotations

import json
from typing import Any, Optional


def make_course(code: str, start: str, end: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    course: dict[str, Any] = {
        "hed__Course__r": {"CourseCode__c": code, "Id": f"id-{code}"},
        "hed__Start_Date__c": start,
        "hed__End_Date__c": end or start,
    }
    course.update(extra)
    return course


def make_envelope(courses: Optional[list[dict[str, Any]]], **data_extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"totalCount": 2, "pageSize": 50}
    if courses is not None:
        data["courses"] = courses
    data.update(data_extra)
    return {
        "actions": [
            {
                "id": "105;a",
                "state": "SUCCESS",
                "returnValue": {"returnValue": data, "cacheable": False},
            },
            {"id": "106;a", "state": "SUCCESS", "returnValue": {"returnValue": {"other": [1, 2.5, None]}}},
        ],
        "context": {"mode": "PROD", "app": "siteforce:communityApp", "loaded": {"APPLICATION@markup": "x"}},
        "perfSummary": {"version": "Ä-ü"},
    }


def compact(document: Any) -> str:
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"))
