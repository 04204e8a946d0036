import logging
import time
import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from formgen.database import fields_collection
from formgen.queries import fetch_fields, field_to_doc, get_form_or_404
from formgen.schemas import ConditionalRule, FieldCreate, FieldOrder, FieldUpdate, FormField, SubmissionIn
from formgen.visibility import visibility_map

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["fields"])


def _validation_detail(exc: ValidationError) -> str:
    return "; ".join(err["msg"] for err in exc.errors())


def _check_rule(rule: Optional[ConditionalRule], field_id: str, fields: List[FormField]) -> None:
    if rule is None or not rule.sourceFieldId:
        return
    if rule.sourceFieldId == field_id:
        raise HTTPException(status_code=400, detail="A field cannot be conditioned on itself")
    if not any(f.id == rule.sourceFieldId for f in fields):
        raise HTTPException(status_code=400, detail="Conditional source field not found in this form")


def _check_unique_name(name: str, field_id: str, fields: List[FormField]) -> None:
    if any(f.name == name and f.id != field_id for f in fields):
        raise HTTPException(status_code=400, detail=f"Field name '{name}' is already used in this form")


async def _renumber(fields: List[FormField]) -> None:
    """Write positions 0..n-1 in the given order, touching only fields that moved."""
    for position, field in enumerate(fields):
        if field.position != position:
            await fields_collection.update_one({"_id": field.id}, {"$set": {"position": position}})


@router.get("/{form_id}/fields")
async def list_fields(form_id: str):
    await get_form_or_404(form_id)
    fields = await fetch_fields(form_id)
    return [f.model_dump(mode="json") for f in fields]


@router.post("/{form_id}/fields")
async def add_field(form_id: str, field: Optional[FieldCreate] = None):
    """Append a field to the end of the form. Omitted attributes get editor defaults."""
    await get_form_or_404(form_id)
    fields = await fetch_fields(form_id)
    data = field.model_dump(exclude_none=True) if field else {}

    try:
        new_field = FormField(
            id=str(uuid.uuid4()),
            formId=form_id,
            name=data.get("name") or f"field_{int(time.time() * 1000)}",
            label=data.get("label") or "New Field",
            type=data.get("type", "text"),
            placeholder=data.get("placeholder", ""),
            options=data.get("options"),
            required=data.get("required", False),
            position=len(fields),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=_validation_detail(exc)) from exc

    _check_unique_name(new_field.name, new_field.id, fields)
    await fields_collection.insert_one(field_to_doc(new_field))
    logger.info("Added field %s to form %s", new_field.id, form_id)
    return new_field.model_dump(mode="json")


@router.patch("/{form_id}/fields/{field_id}")
async def update_field(form_id: str, field_id: str, update: FieldUpdate):
    """Partial update. Sending `conditionalRule: null` removes the rule."""
    fields = await fetch_fields(form_id)
    current = next((f for f in fields if f.id == field_id), None)
    if current is None:
        await get_form_or_404(form_id)
        raise HTTPException(status_code=404, detail="Field not found")

    merged = current.model_dump()
    merged.update(update.model_dump(exclude_unset=True))
    try:
        updated = FormField.model_validate(merged)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=_validation_detail(exc)) from exc

    _check_unique_name(updated.name, field_id, fields)
    _check_rule(updated.conditionalRule, field_id, fields)

    await fields_collection.replace_one({"_id": field_id, "formId": form_id}, field_to_doc(updated))
    return updated.model_dump(mode="json")


@router.delete("/{form_id}/fields/{field_id}")
async def delete_field(form_id: str, field_id: str):
    # rules pointing at this field are left alone; they evaluate as visible
    result = await fields_collection.delete_one({"_id": field_id, "formId": form_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Field not found")
    await _renumber(await fetch_fields(form_id))
    logger.info("Deleted field %s from form %s", field_id, form_id)
    return {"status": "ok", "deletedId": field_id}


@router.put("/{form_id}/fields/order")
async def reorder_fields(form_id: str, order: FieldOrder):
    await get_form_or_404(form_id)
    fields = await fetch_fields(form_id)

    if len(order.fieldIds) != len(fields) or set(order.fieldIds) != {f.id for f in fields}:
        raise HTTPException(status_code=400, detail="fieldIds must list every field of the form exactly once")

    by_id = {f.id: f for f in fields}
    await _renumber([by_id[field_id] for field_id in order.fieldIds])

    fields = await fetch_fields(form_id)
    return [f.model_dump(mode="json") for f in fields]


@router.post("/{form_id}/visibility")
async def preview_visibility(form_id: str, answers: SubmissionIn):
    """Live preview: which fields are shown for the answers entered so far."""
    await get_form_or_404(form_id)
    fields = await fetch_fields(form_id)
    return {"visibility": visibility_map(fields, answers.values)}
