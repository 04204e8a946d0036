import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from formgen.config import settings
from formgen.database import (
    fields_collection,
    forms_collection,
    submissions_collection,
    with_public_id,
)
from formgen.errors import FieldGenerationError
from formgen.generator import FieldGenerator, get_field_generator
from formgen.queries import fetch_fields, field_to_doc, get_form_or_404
from formgen.schemas import FormField, FormIn, FormUpdate, GenerateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["forms"])

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    digits = ""
    while True:
        n, rem = divmod(n, 36)
        digits = _BASE36[rem] + digits
        if n == 0:
            return digits


def make_public_slug(form_id: str) -> str:
    return f"form-{form_id[:8]}-{_base36(int(time.time() * 1000))}"


def public_url(slug: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/form/{slug}"


def _new_form_doc(name: str, description: Optional[str] = None) -> dict:
    now = datetime.now(timezone.utc)
    # publicSlug stays absent until publish so the sparse unique index ignores it
    return {
        "_id": str(uuid.uuid4()),
        "name": name,
        "description": description,
        "isPublic": False,
        "createdAt": now,
        "updatedAt": now,
    }


@router.get("")
async def list_forms():
    """All forms, newest first."""
    items = []
    async for item in forms_collection.find({}, sort=[("createdAt", -1)]):
        items.append(with_public_id(item))
    return items


@router.post("")
async def create_form(form: FormIn):
    doc = _new_form_doc(form.name, form.description)
    await forms_collection.insert_one(doc)
    logger.info("Created form %s (%s)", doc["_id"], form.name)
    return {"status": "ok", "formId": doc["_id"]}


@router.post("/generate")
async def generate_form(request: GenerateRequest, generator: FieldGenerator = Depends(get_field_generator)):
    """Create a form whose fields are proposed by the AI generator."""
    form_name = request.formName.strip()
    if not form_name:
        raise HTTPException(status_code=400, detail="Form name is required")

    try:
        generated = await generator.generate(form_name)
    except FieldGenerationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    doc = _new_form_doc(form_name, f"AI-generated {form_name} form")
    await forms_collection.insert_one(doc)

    fields = [
        FormField(id=str(uuid.uuid4()), formId=doc["_id"], position=index, **proposed.model_dump())
        for index, proposed in enumerate(generated)
    ]
    await fields_collection.insert_many([field_to_doc(f) for f in fields])
    logger.info("Created form %s with %d generated fields", doc["_id"], len(fields))

    return {
        "status": "ok",
        "formId": doc["_id"],
        "fields": [f.model_dump(mode="json") for f in fields],
    }


@router.get("/{form_id}")
async def get_form(form_id: str):
    form = await get_form_or_404(form_id)
    fields = await fetch_fields(form_id)
    form["fields"] = [f.model_dump(mode="json") for f in fields]
    return form


@router.patch("/{form_id}")
async def update_form(form_id: str, update: FormUpdate):
    await get_form_or_404(form_id)

    changes = update.model_dump(exclude_unset=True)
    if changes.get("isPublic") is None:
        changes.pop("isPublic", None)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Form name is required")
        changes["name"] = name
    changes["updatedAt"] = datetime.now(timezone.utc)

    await forms_collection.update_one({"_id": form_id}, {"$set": changes})
    return await get_form_or_404(form_id)


@router.delete("/{form_id}")
async def delete_form(form_id: str):
    """Delete a form together with its fields and submissions."""
    await get_form_or_404(form_id)

    await fields_collection.delete_many({"formId": form_id})
    await submissions_collection.delete_many({"formId": form_id})
    await forms_collection.delete_one({"_id": form_id})
    logger.info("Deleted form %s", form_id)

    return {"status": "ok", "formId": form_id}


@router.post("/{form_id}/publish")
async def publish_form(form_id: str):
    """Give the form a public slug (once) and open it for submissions."""
    form = await get_form_or_404(form_id)

    slug = form.get("publicSlug") or make_public_slug(form_id)
    await forms_collection.update_one(
        {"_id": form_id},
        {"$set": {"publicSlug": slug, "isPublic": True, "updatedAt": datetime.now(timezone.utc)}}
    )

    return {"status": "ok", "formId": form_id, "publicSlug": slug, "publicUrl": public_url(slug)}


@router.get("/{form_id}/analytics")
async def form_analytics(form_id: str):
    form = await get_form_or_404(form_id)

    total = await submissions_collection.count_documents({"formId": form_id})
    field_count = await fields_collection.count_documents({"formId": form_id})
    latest = await submissions_collection.find_one({"formId": form_id}, sort=[("submittedAt", -1)])

    slug = form.get("publicSlug")
    return {
        "formId": form_id,
        "totalResponses": total,
        "fieldCount": field_count,
        "latestResponseAt": latest.get("submittedAt") if latest else None,
        "isPublic": bool(form.get("isPublic")),
        "publicUrl": public_url(slug) if slug else None,
    }
