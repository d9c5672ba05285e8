"""Fixed catalog of automation workflows a campaign can schedule.

Connector names and webhook targets are part of the catalog; requests only
choose which entries to enable. The automation server polls
workflow_registry and calls the webhooks itself.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from models import CampaignOptions, WorkflowEntry

WEBHOOK_BASE_URL = os.environ.get(
    "WORKFLOW_WEBHOOK_BASE_URL", "http://automation.teamob.io:5678/webhook"
).rstrip("/")

SOCIAL_POSTING = "Post on Social Media"
LINKEDIN_SCRAPER = "Linkedin Scraper"
GITHUB_SCRAPER = "Github_Scrapper"
LINKEDIN_MESSAGING = "Linkedin Messaging"

DEFAULT_DEPTH_LIMIT = 2
MESSAGING_DEPTH_LIMIT = 6
INTERVAL_MINUTES = 1440
PRIORITY = 5


@dataclass(frozen=True)
class CatalogItem:
    workflow_name: str
    connector_name: str
    webhook_id: str

    @property
    def webhook_url(self) -> str:
        return f"{WEBHOOK_BASE_URL}/{self.webhook_id}"


# Insertion order of workflow rows
CATALOG = {
    "linkedinScraper": CatalogItem(
        LINKEDIN_SCRAPER, "linkedin_scrap", "cbbf7338-989c-44da-83da-99cf238e2de7"
    ),
    "githubScraper": CatalogItem(
        GITHUB_SCRAPER, "github_scrap", "8b5fd351-b8eb-45b6-87af-c7e7d47fe964"
    ),
    "linkedinMessaging": CatalogItem(
        LINKEDIN_MESSAGING, "linkedin_message", "76cec9f7-a63f-4a11-aaf5-a2eec4acf087"
    ),
}

SOCIAL_ITEM = CatalogItem(
    SOCIAL_POSTING, "social_media_post", "2a74e18c-8f37-4abf-a8cd-25ff4477fe15"
)


def depth_limit(workflow_name: str) -> int:
    if LINKEDIN_MESSAGING.lower() in workflow_name.lower():
        return MESSAGING_DEPTH_LIMIT
    return DEFAULT_DEPTH_LIMIT


def social_params(options: CampaignOptions) -> str:
    return json.dumps({
        "fb": "1" if options.facebookPosting else "0",
        "ln": "1" if options.linkedinPosting else "0",
        "insta": "0",
        "twitter": "1" if options.twitterPosting else "0",
    })


def _entry(item: CatalogItem, now: datetime, params: Optional[str] = None) -> WorkflowEntry:
    return WorkflowEntry(
        workflow_name=item.workflow_name,
        connector_name=item.connector_name,
        webhook_url=item.webhook_url,
        params=params,
        depth_limit=depth_limit(item.workflow_name),
        interval_minutes=INTERVAL_MINUTES,
        next_run_at=now + timedelta(days=1),
        last_executed_at=now - timedelta(days=1),
        is_active=True,
        priority=PRIORITY,
        retry_count=0,
    )


def build_entries(options: CampaignOptions, now: Optional[datetime] = None) -> list[WorkflowEntry]:
    """One workflow row per enabled option; the posting flags share one row."""
    now = now or datetime.now()
    entries = [
        _entry(item, now)
        for flag, item in CATALOG.items()
        if getattr(options, flag)
    ]
    if options.any_posting():
        entries.append(_entry(SOCIAL_ITEM, now, social_params(options)))
    return entries


def _is_set(value) -> bool:
    return value is True or str(value).strip() == "1"


def selected_options(workflows: list[dict]) -> dict:
    """Rebuild the six option flags from a campaign's workflow rows."""
    selected = {name: False for name in CampaignOptions.model_fields}

    for row in workflows:
        name = str(row.get("workflow_name") or "").lower()
        if not name:
            continue
        if "linkedin scraper" in name:
            selected["linkedinScraper"] = True
        if "github" in name and "scrapper" in name:
            selected["githubScraper"] = True
        if "linkedin messaging" in name:
            selected["linkedinMessaging"] = True
        if "social media" in name or "post on" in name:
            params = row.get("params")
            if isinstance(params, str):
                try:
                    params = json.loads(params)
                except ValueError:
                    params = None
            if isinstance(params, dict):
                selected["linkedinPosting"] = _is_set(params.get("ln"))
                selected["facebookPosting"] = _is_set(params.get("fb"))
                selected["twitterPosting"] = _is_set(params.get("twitter"))

    return selected
