from types import SimpleNamespace

import pytest

from app.jobs import automated_checks
from app.jobs.automated_checks import build_checks

def _sub(**over):
    base = dict(
        twitter_link="https://twitter.com/trader/status/42",
        trade_idea="Long NAS100 at VWAP reclaim #TradeJournal cc @desk",
        has_hashtag=True,
        has_tagged_account=True,
        twitter_screenshot_url="c/1/u/2/shot.png",
        chart_image_url=None,
    )
    base.update(over)
    return SimpleNamespace(**base)

CAMPAIGN = SimpleNamespace(required_hashtag="#TradeJournal", required_account="@desk")

@pytest.fixture
def storage(monkeypatch, image_bytes):
    objects = {("screenshots", "c/1/u/2/shot.png"): (image_bytes((30, 20)), "image/png")}

    def get_bytes(kind, key):
        if (kind, key) not in objects:
            raise FileNotFoundError(key)
        return objects[(kind, key)]

    monkeypatch.setattr(automated_checks, "get_bytes", get_bytes)
    return objects

def test_clean_submission_has_no_flags(storage):
    checks, flags = build_checks(_sub(), CAMPAIGN)
    assert flags == []
    assert checks["link_format_ok"] and checks["analysis_present"]
    assert checks["screenshot"] == {"present": True, "valid": True, "mime": "image/png", "width": 30, "height": 20}
    assert checks["chart"] == {"present": False}

def test_unconfirmed_claims_and_missing_proof_are_flagged(storage):
    sub = _sub(
        trade_idea="Short gold, no tags here",
        twitter_link="https://x.com/trader/likes",
        twitter_screenshot_url="c/1/u/2/gone.png",
        chart_image_url="c/1/u/2/chart.png",
    )
    checks, flags = build_checks(sub, CAMPAIGN)
    assert checks["screenshot"]["error"] == "missing_in_storage"
    assert set(flags) == {"bad_link", "screenshot_invalid", "hashtag_claim_unconfirmed", "tag_claim_unconfirmed"}

def test_campaign_without_requirements_skips_text_checks(storage):
    checks, flags = build_checks(_sub(trade_idea="Plain idea without tags"), SimpleNamespace(required_hashtag=None, required_account=None))
    assert checks["hashtag_in_text"] is None
    assert "hashtag_claim_unconfirmed" not in flags
