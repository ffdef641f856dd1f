"""
api/routes/admin.py -- Read and write the structured site documents.

Routes:
  GET  /api/admin                           -- profile, experiences, top skills, settings
  GET  /api/admin?action=generateTopSkills  -- top 10 tags across experiences
  POST /api/admin                           -- replace one document: {file, data}

All routes sit behind the gate middleware; none re-check the session.

POST accepts only the names in ADMIN_EDITABLE. The blog index is whitelisted
in FileStore but not here: it changes only together with a
content file, through /api/admin/blog.

Profile writes are read-merge-write: image URL fields are set by the upload
flow, not by the profile form, so an incoming empty value keeps the stored one.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Any, Literal, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import AdminDataUpdate
from api.responses import success
from content.filestore import ADMIN_EDITABLE, FileStore
from core.errors import NotWhitelisted, ValidationError

logger = logging.getLogger("folio.api.admin")

router = APIRouter()

TOP_SKILLS_LIMIT = 10

# Top-level JSON type each editable document must have.
_EXPECTED_SHAPE: dict[str, type] = {
    "experiences": list,
    "top-skills": list,
    "profile": dict,
    "settings": dict,
}

# Fields kept from the stored document when the incoming value is empty.
PRESERVED_FIELDS: dict[str, list[str]] = {
    "profile": [
        "profileImageUrl",
        "profileImageWebUrl",
        "profileImagePdfUrl",
        "profileImageUpdatedAt",
    ],
}


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def merge_preserved_fields(existing: dict, incoming: dict, fields: list[str]) -> dict:
    """Return incoming with each listed field restored from existing if left empty."""
    merged = dict(incoming)
    for name in fields:
        if _is_empty(incoming.get(name)) and not _is_empty(existing.get(name)):
            merged[name] = existing[name]
    return merged


def top_skills(experiences: list, limit: int = TOP_SKILLS_LIMIT) -> list[str]:
    """Most frequent tags across experience entries, most frequent first.

    Ties keep first-seen order (Counter.most_common is stable).
    """
    counts: Counter[str] = Counter()
    for entry in experiences:
        if isinstance(entry, dict) and isinstance(entry.get("tags"), list):
            counts.update(tag for tag in entry["tags"] if isinstance(tag, str))
    return [tag for tag, _ in counts.most_common(limit)]


@router.get("")
def read_admin_data(
    request: Request,
    action: Optional[Literal["generateTopSkills"]] = None,
) -> JSONResponse:
    store: FileStore = request.app.state.store
    experiences = store.load("experiences")

    if action == "generateTopSkills":
        return success({"topSkills": top_skills(experiences)})

    return success(
        {
            "profileData": store.load("profile"),
            "experiences": experiences,
            "topSkills": store.load("top-skills"),
            "systemSettings": store.load("settings"),
        }
    )


@router.post("")
def update_admin_data(request: Request, body: AdminDataUpdate) -> JSONResponse:
    store: FileStore = request.app.state.store

    if body.file not in ADMIN_EDITABLE:
        logger.warning("Admin POST rejected: %r is not an editable resource", body.file)
        raise NotWhitelisted(f"Invalid file. Must be one of: {', '.join(sorted(ADMIN_EDITABLE))}")

    expected = _EXPECTED_SHAPE[body.file]
    if not isinstance(body.data, expected):
        kind = "an object" if expected is dict else "an array"
        raise ValidationError(
            "Request validation failed.",
            fields=[{"field": "data", "message": f"{body.file} must be {kind}."}],
        )

    data = body.data
    preserved = PRESERVED_FIELDS.get(body.file)
    if preserved:
        existing = store.load(body.file)
        data = merge_preserved_fields(existing if isinstance(existing, dict) else {}, data, preserved)

    store.save(body.file, data)
    logger.info("Admin data file updated: %s", body.file)
    return success({"file": body.file, "timestamp": int(time.time() * 1000)})
