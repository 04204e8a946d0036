import os

import pytest
import requests

BASE_URL = os.environ.get("FORMGEN_LIVE_URL", "").rstrip("/")

pytestmark = pytest.mark.skipif(not BASE_URL, reason="FORMGEN_LIVE_URL not set")


def test_conditional_submission_flow():
    """
    Against a running server:

    1. Create a form with a subscribe choice and a conditional email field
    2. Publish it
    3. Submit without subscribing (email not demanded)
    4. Submit with subscribing but no email (rejected)
    """

    # ---------- 1. Create form and fields ----------
    r = requests.post(f"{BASE_URL}/api/forms", json={"name": "Live newsletter"})
    assert r.status_code == 200
    form_id = r.json()["formId"]

    try:
        subscribe = requests.post(
            f"{BASE_URL}/api/forms/{form_id}/fields",
            json={"name": "subscribe", "label": "Subscribe?", "type": "single_choice", "options": ["Yes", "No"]},
        ).json()
        email = requests.post(
            f"{BASE_URL}/api/forms/{form_id}/fields",
            json={"name": "email", "label": "Email", "type": "email", "required": True},
        ).json()

        r = requests.patch(
            f"{BASE_URL}/api/forms/{form_id}/fields/{email['id']}",
            json={"conditionalRule": {
                "enabled": True,
                "action": "show",
                "sourceFieldId": subscribe["id"],
                "operator": "equals",
                "value": "yes",
            }},
        )
        assert r.status_code == 200

        # ---------- 2. Publish ----------
        slug = requests.post(f"{BASE_URL}/api/forms/{form_id}/publish").json()["publicSlug"]

        # ---------- 3. Hidden required field is skipped ----------
        r = requests.post(f"{BASE_URL}/api/public/{slug}/submit", json={"values": {"subscribe": "No"}})
        assert r.status_code == 200
        assert r.json()["values"] == {"subscribe": "No"}

        # ---------- 4. Visible required field is enforced ----------
        r = requests.post(f"{BASE_URL}/api/public/{slug}/submit", json={"values": {"subscribe": "Yes"}})
        assert r.status_code == 422

        stats = requests.get(f"{BASE_URL}/api/forms/{form_id}/analytics").json()
        assert stats["totalResponses"] == 1
    finally:
        requests.delete(f"{BASE_URL}/api/forms/{form_id}")
