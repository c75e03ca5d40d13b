"""
Admin export of newsletter sign-ups from the hosting platform's forms API.
"""
import csv
import io
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from storefront.config import StorefrontConfig
from storefront.errors import ConfigurationError, NotFoundError, UnauthorizedError
from storefront.logger import get_logger

logger = get_logger("newsletter")

PER_PAGE = 100
CSV_FILENAME = "newsletter-emails.csv"


def check_admin_key(config: StorefrontConfig, supplied: Optional[str]) -> None:
    """Constant-time admin key check. No configured key means nobody gets in."""
    if not config.admin_key or not supplied:
        raise UnauthorizedError("Unauthorized")
    if not secrets.compare_digest(supplied.encode("utf-8"), config.admin_key.encode("utf-8")):
        raise UnauthorizedError("Unauthorized")


class FormsClient:
    """Read-only client for site forms and their submissions."""

    def __init__(self, token: str, api_url: str = "https://api.netlify.com", timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        resp = await self._client.get(path, params=params)
        if not resp.is_success:
            raise httpx.HTTPStatusError(
                f"Forms API {resp.status_code}: {resp.text}", request=resp.request, response=resp
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise httpx.DecodingError(f"Forms API returned invalid JSON: {e}", request=resp.request) from e
        if not isinstance(data, list):
            raise httpx.DecodingError("Forms API returned an unexpected payload", request=resp.request)
        return data

    async def list_forms(self, site_id: str) -> List[Dict[str, Any]]:
        return await self._get(f"/api/v1/sites/{site_id}/forms")

    async def list_submissions(self, form_id: str) -> List[Dict[str, Any]]:
        """Every submission, one page of 100 at a time until a short page."""
        submissions: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = await self._get(
                f"/api/v1/forms/{form_id}/submissions",
                params={"per_page": PER_PAGE, "page": page},
            )
            submissions.extend(batch)
            if len(batch) < PER_PAGE:
                break
            page += 1
        return submissions


def _submission_email(submission: Dict[str, Any]) -> str:
    return (submission.get("data") or {}).get("email") or submission.get("email") or ""


def _us_date(created_at: Optional[str]) -> str:
    """ISO timestamp -> M/D/YYYY"""
    if not created_at:
        return ""
    try:
        parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return ""
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def to_csv(submissions: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    buffer.write("Email,Date Submitted\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for submission in submissions:
        writer.writerow([_submission_email(submission), _us_date(submission.get("created_at"))])
    return buffer.getvalue()


def to_json(submissions: List[Dict[str, Any]]) -> Dict[str, Any]:
    emails = [
        {"email": _submission_email(s), "date": s.get("created_at") or ""}
        for s in submissions
    ]
    return {"total": len(emails), "emails": emails}


async def fetch_newsletter_submissions(config: StorefrontConfig, forms: FormsClient) -> List[Dict[str, Any]]:
    if not config.netlify_site_id or not config.netlify_api_token:
        raise ConfigurationError("Missing NETLIFY_SITE_ID or NETLIFY_API_TOKEN environment variables")

    all_forms = await forms.list_forms(config.netlify_site_id)
    form = next((f for f in all_forms if f.get("name") == config.newsletter_form_name), None)
    if form is None:
        raise NotFoundError(
            f'Newsletter form not found. Make sure the form name is "{config.newsletter_form_name}".'
        )

    submissions = await forms.list_submissions(form["id"])
    logger.info("Exported %d newsletter submissions", len(submissions))
    return submissions
