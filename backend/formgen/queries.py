from typing import List

from fastapi import HTTPException

from formgen.database import fields_collection, forms_collection, with_public_id
from formgen.schemas import FormField


async def get_form_or_404(form_id: str) -> dict:
    form = await forms_collection.find_one({"_id": form_id})
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return with_public_id(form)


async def fetch_fields(form_id: str) -> List[FormField]:
    """Fields of a form in render order."""
    fields = []
    async for doc in fields_collection.find({"formId": form_id}, sort=[("position", 1)]):
        fields.append(FormField.model_validate(with_public_id(doc)))
    return fields


def field_to_doc(field: FormField) -> dict:
    doc = field.model_dump(mode="json")
    doc["_id"] = doc.pop("id")
    return doc
