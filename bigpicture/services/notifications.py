"""Run report e-mail.

Renders the batch run report to HTML and sends it through the Resend API.
Delivery problems are logged and never raised: a missing e-mail must not
turn a finished batch into a failed one.
"""

from pathlib import Path
from typing import Any

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from bigpicture.config import Settings, get_settings

logger = structlog.get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
TEMPLATES_PATH = Path(__file__).parent.parent / "templates"
SKIPPED_LIST_LIMIT = 10


def stat_value(value: Any, label: str = "") -> str:
    """Format a changed stat for display; grosses get a dollar format."""
    if value is None:
        return "N/A"
    if "Box Office" in label and isinstance(value, int):
        return f"${value:,}"
    return str(value)


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_PATH)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["stat_value"] = stat_value


def email_subject(report: dict[str, Any]) -> str:
    return (
        f"Movie Stats Update: {report['successful']} updated, "
        f"{report['withErrors']} errors"
    )


def render_run_report(report: dict[str, Any], refresh_error: str | None = None) -> str:
    """
    Render a run report as HTML.

    Args:
        report: Run report dict (RunReport.to_dict())
        refresh_error: Aggregate refresh failure to mention, if any

    Returns:
        HTML body
    """
    groups: dict[str, list[dict[str, Any]]] = {
        "success": [],
        "partial": [],
        "failed": [],
        "skipped": [],
    }
    for movie in report["movies"]:
        groups.setdefault(movie["status"], []).append(movie)

    changed = [m for m in report["movies"] if m.get("changes")]

    template = _env.get_template("run_report_email.html")
    return template.render(
        report=report,
        groups=groups,
        changed=changed,
        refresh_error=refresh_error,
        skipped_list_limit=SKIPPED_LIST_LIMIT,
    )


async def send_run_report(
    report: dict[str, Any],
    refresh_error: str | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> bool:
    """
    E-mail a run report.

    Returns:
        True if Resend accepted the message, False if skipped or failed
    """
    settings = settings or get_settings()
    if not settings.notifications_configured:
        logger.info("run_report_email_skipped", reason="resend not configured")
        return False

    payload = {
        "from": settings.notification_from,
        "to": [settings.notification_email],
        "subject": email_subject(report),
        "html": render_run_report(report, refresh_error),
    }
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}

    client = http_client or httpx.AsyncClient(timeout=15.0)
    try:
        response = await client.post(RESEND_API_URL, json=payload, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(
            "run_report_email_rejected",
            status_code=e.response.status_code,
            response_text=e.response.text[:500],
        )
        return False
    except httpx.HTTPError as e:
        logger.error("run_report_email_failed", error=str(e))
        return False
    finally:
        if http_client is None:
            await client.aclose()

    logger.info("run_report_email_sent", to=settings.notification_email)
    return True
