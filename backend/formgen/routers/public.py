import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from formgen.database import forms_collection, submissions_collection, with_public_id
from formgen.queries import fetch_fields
from formgen.schemas import SubmissionIn
from formgen.visibility import effective_answers, missing_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/public", tags=["public"])


async def _get_public_form(slug: str) -> dict:
    form = await forms_collection.find_one({"publicSlug": slug})
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    if not form.get("isPublic"):
        raise HTTPException(status_code=403, detail="This form is not publicly available")
    return with_public_id(form)


@router.get("/{slug}")
async def get_public_form(slug: str):
    form = await _get_public_form(slug)
    fields = await fetch_fields(form["id"])
    return {
        "id": form["id"],
        "name": form.get("name"),
        "description": form.get("description"),
        "fields": [f.model_dump(mode="json") for f in fields],
    }


@router.post("/{slug}/submit")
async def submit_public_form(slug: str, submission: SubmissionIn, request: Request):
    """
    Store one response.

    Only visible fields are checked for requiredness and only their answers
    are kept; anything entered into a field that ended up hidden is dropped.
    """
    form = await _get_public_form(slug)
    fields = await fetch_fields(form["id"])
    answers = submission.values

    missing = missing_required(fields, answers)
    if missing:
        logger.info("Rejected submission to %s: %s missing", form["id"], missing[0].name)
        raise HTTPException(status_code=422, detail=f"{missing[0].label} is required")

    values = effective_answers(fields, answers)

    doc = {
        "formId": form["id"],
        "values": values,
        "submittedAt": datetime.now(timezone.utc),
        "ipAddress": request.client.host if request.client else None,
        "userAgent": request.headers.get("user-agent"),
    }
    await submissions_collection.insert_one(doc)
    logger.info("Stored submission %s for form %s", doc["_id"], form["id"])
    return with_public_id(doc)
