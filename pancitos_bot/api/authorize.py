"""Account linking view.

The account linking call-to-action points at this page. On a successful
login the user is sent back to Messenger's ``redirect_uri`` with an
``authorization_code`` appended, which then arrives on the webhook as an
``account_linking`` event.
"""

import logging
from pathlib import Path
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Query, Request
from fastapi.templating import Jinja2Templates

from pancitos_bot.constants import ACCOUNT_LINKING_AUTH_CODE

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()


def build_success_redirect_uri(redirect_uri: str, auth_code: str) -> str:
    """Append ``authorization_code`` to ``redirect_uri``."""
    separator = "&" if urlsplit(redirect_uri).query else "?"
    return f"{redirect_uri}{separator}{urlencode({'authorization_code': auth_code})}"


@router.get("/authorize")
async def authorize(
    request: Request,
    redirect_uri: str = Query(...),
    account_linking_token: str | None = Query(default=None),
):
    """Render the account linking consent page."""
    redirect_uri_success = build_success_redirect_uri(
        redirect_uri, ACCOUNT_LINKING_AUTH_CODE
    )
    logger.info("Rendering account linking page")

    return templates.TemplateResponse(
        request=request,
        name="authorize.html",
        context={
            "account_linking_token": account_linking_token,
            "redirect_uri": redirect_uri,
            "redirect_uri_success": redirect_uri_success,
        },
    )
