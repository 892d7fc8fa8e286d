from __future__ import annotations
import asyncio
import uuid
from datetime import datetime, timezone as dt_tz
import structlog
from app.db import SessionLocal
from app.models.submission import TradeSubmission
from app.models.campaign import Campaign
from app.schemas.submission import is_twitter_status_link
from app.services.media import validate_image, image_dimensions, InvalidImage
from app.services.realtime import notify_change
from app.services.scoring import has_analysis
from app.services.storage import get_bytes, SCREENSHOTS, CHARTS
from app.config import settings

log = structlog.get_logger()

def _mentions(text: str, needle: str | None) -> bool | None:
    if not needle:
        return None
    return needle.strip().lower() in (text or "").lower()

def _image_check(kind: str, key: str | None) -> dict:
    if not key:
        return {"present": False}
    try:
        data, _ = get_bytes(kind, key)
    except FileNotFoundError:
        return {"present": False, "error": "missing_in_storage"}
    try:
        mime = validate_image(data, settings.max_upload_bytes, kind)
    except InvalidImage as e:
        return {"present": True, "valid": False, "error": str(e)}
    size = image_dimensions(data)
    return {"present": True, "valid": True, "mime": mime, "width": size[0] if size else None, "height": size[1] if size else None}

def build_checks(sub: TradeSubmission, campaign: Campaign) -> tuple[dict, list[str]]:
    """
    Collect reviewer hints for a submission.
    Returns (checks, flags); flags lists the failed checks by name.
    """
    checks = {
        "link_format_ok": is_twitter_status_link(sub.twitter_link),
        "analysis_present": has_analysis(sub.trade_idea),
        "hashtag_in_text": _mentions(sub.trade_idea, campaign.required_hashtag),
        "account_in_text": _mentions(sub.trade_idea, campaign.required_account),
        "screenshot": _image_check(SCREENSHOTS, sub.twitter_screenshot_url),
        "chart": _image_check(CHARTS, sub.chart_image_url),
    }
    flags: list[str] = []
    if not checks["link_format_ok"]:
        flags.append("bad_link")
    if not checks["screenshot"].get("valid"):
        flags.append("screenshot_invalid")
    if checks["chart"].get("present") and not checks["chart"].get("valid"):
        flags.append("chart_invalid")
    if sub.has_hashtag and checks["hashtag_in_text"] is False:
        flags.append("hashtag_claim_unconfirmed")
    if sub.has_tagged_account and checks["account_in_text"] is False:
        flags.append("tag_claim_unconfirmed")
    return checks, flags

async def _run(submission_id: str):
    async with SessionLocal() as session:
        sub = await session.get(TradeSubmission, uuid.UUID(submission_id))
        if not sub:
            log.warning("automated_checks_missing_submission", submission_id=submission_id)
            return
        campaign = await session.get(Campaign, sub.campaign_id)
        checks, flags = build_checks(sub, campaign)
        checks["flags"] = flags
        checks["checked_at"] = datetime.now(dt_tz.utc).isoformat()
        # Hints only: verification_status stays with the reviewer
        sub.automated_checks = checks
        await session.commit()
        log.info("automated_checks_done", submission_id=submission_id, flags=flags)
        await notify_change("trade_submissions", "UPDATE", sub.campaign_id)

def run_automated_checks(submission_id: str):
    # RQ entry point (sync); run the async coroutine
    asyncio.run(_run(submission_id))
