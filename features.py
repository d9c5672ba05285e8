"""Per-feature profile counts for a campaign.

Scraped profiles are tagged with a free-text source ("Linkedin", "Github")
and with the requirement id in their campaign_id column. Workflow names are
matched to those sources at read time:

  1. exact, case-insensitive
  2. known aliases: any feature mentioning linkedin/github takes that source
  3. substring either way ("linkedin scraper" contains "linkedin")
"""

import logging

from campaigns import REGISTRY_TABLE, invalid_requirement
from catalog import SOCIAL_POSTING
from db import QueryError
from normalizer import decode
from tables import LogicalTable
from users import to_int

logger = logging.getLogger(__name__)

SOURCE_ALIASES = ("linkedin", "github")


def profile_counts(rows: list[dict]) -> dict:
    """Lower-cased source -> profile count. Rows without a source are dropped."""
    counts = {}
    for row in rows:
        source = row.get("source")
        if source is None:
            continue
        key = str(source).strip().lower()
        if not key:
            continue
        counts[key] = to_int(row.get("profiles"))
    return counts


def match_profiles(feature: str, counts: dict) -> int:
    name = feature.strip().lower()
    if not name:
        return 0

    if name in counts:
        return counts[name]

    for alias in SOURCE_ALIASES:
        if alias in name and alias in counts:
            return counts[alias]

    for source, count in counts.items():
        if source in name or name in source:
            return count

    return 0


class FeatureAggregator:
    def __init__(self, query, resolver, campaigns):
        self.query = query
        self.resolver = resolver
        self.campaigns = campaigns

    def feature_names(self, campaign_id: int) -> list[str]:
        result = self.query(
            f"SELECT workflow_name FROM {REGISTRY_TABLE} "
            "WHERE campaign_id = %s AND workflow_name <> %s",
            (campaign_id, SOCIAL_POSTING),
        )
        names = []
        for row in decode(result, REGISTRY_TABLE):
            name = row.get("workflow_name")
            if name and SOCIAL_POSTING.lower() not in str(name).lower():
                names.append(str(name))
        return names

    def features(self, requirement_id, debug: bool = False) -> dict:
        requirement_id = to_int(requirement_id)
        if requirement_id <= 0:
            return invalid_requirement()

        status = self.campaigns.status(requirement_id)
        if not status["success"] or not status["campaign_id"]:
            return {"success": False, "error": "Campaign not found for this requirement"}
        campaign_id = status["campaign_id"]

        profile_table = self.resolver.resolve(LogicalTable.PROFILE)
        try:
            names = self.feature_names(campaign_id)
            # campaign_id on profile rows holds the requirement id
            profile_result = self.query(
                f"SELECT source, COUNT(bi_primary_id) AS profiles FROM {profile_table} "
                "WHERE campaign_id = %s GROUP BY source",
                (requirement_id,),
            )
        except QueryError as e:
            logger.error(f"Feature lookup failed for requirement {requirement_id}: {e}")
            return {"success": False, "error": "db_query_failed", "message": str(e)}

        if debug:
            return {
                "success": True,
                "debug": True,
                "requirement_id": requirement_id,
                "campaign_id": campaign_id,
                "profile_table": profile_table,
                "profile_result_raw": profile_result,
                "features": names,
            }

        counts = profile_counts(decode(profile_result, profile_table))
        return {
            "success": True,
            "features": [
                {"feature": name, "profiles": match_profiles(name, counts)}
                for name in names
            ],
            "campaign_id": campaign_id,
        }
