from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, HTTPException

from formgen.database import submissions_collection, with_public_id
from formgen.queries import get_form_or_404

router = APIRouter(prefix="/api/forms", tags=["submissions"])


@router.get("/{form_id}/submissions")
async def list_submissions(form_id: str):
    """Return submissions for a form (most recent first)."""
    await get_form_or_404(form_id)

    submissions = []
    async for doc in submissions_collection.find({"formId": form_id}, sort=[("submittedAt", -1)]):
        doc = with_public_id(doc)
        submissions.append({
            "id": doc["id"],
            "formId": doc.get("formId"),
            "values": doc.get("values", {}),
            "submittedAt": doc.get("submittedAt"),
            "ipAddress": doc.get("ipAddress"),
            "userAgent": doc.get("userAgent"),
        })
    return submissions


@router.delete("/{form_id}/submissions/{submission_id}")
async def delete_submission(form_id: str, submission_id: str):
    """Delete a single submission by id."""
    try:
        oid = ObjectId(submission_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid submission id")

    result = await submissions_collection.delete_one({"_id": oid, "formId": form_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Submission not found")
    return {"status": "ok", "deletedId": submission_id}
