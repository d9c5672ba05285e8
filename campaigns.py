"""Campaign creation and status for requirements.

A requirement has at most one campaign. The rule is enforced by checking
before inserting; there is no unique constraint behind it, so two creates
racing for the same requirement can both succeed. The creation sequence is
not transactional either: workflow rows inserted before a failure stay.
"""

import logging
from datetime import date, datetime

from catalog import build_entries, selected_options
from db import QueryError
from models import CampaignOptions
from normalizer import decode
from tables import LogicalTable
from users import to_int

logger = logging.getLogger(__name__)

CAMPAIGNS_TABLE = "workflow_campaigns"
REGISTRY_TABLE = "workflow_registry"


def invalid_requirement() -> dict:
    return {"success": False, "error": "Invalid requirement ID"}


class CampaignOrchestrator:
    def __init__(self, query, resolver, requirements):
        self.query = query
        self.resolver = resolver
        self.requirements = requirements

    def campaign_rows(self, requirement_id: int, newest: bool = False) -> list[dict]:
        order = "ORDER BY id DESC " if newest else ""
        result = self.query(
            f"SELECT id FROM {CAMPAIGNS_TABLE} WHERE ref_table_id = %s {order}LIMIT 1",
            (requirement_id,),
        )
        return decode(result, CAMPAIGNS_TABLE)

    def find_campaign_id(self, requirement_id: int, newest: bool = False):
        rows = self.campaign_rows(requirement_id, newest)
        if not rows or rows[0].get("id") is None:
            return None
        return to_int(rows[0]["id"]) or None

    def workflows(self, campaign_id: int) -> list[dict]:
        result = self.query(
            f"SELECT workflow_name, params FROM {REGISTRY_TABLE} WHERE campaign_id = %s",
            (campaign_id,),
        )
        return decode(result, REGISTRY_TABLE)

    def status(self, requirement_id) -> dict:
        requirement_id = to_int(requirement_id)
        if requirement_id <= 0:
            return invalid_requirement()

        try:
            rows = self.campaign_rows(requirement_id)
            campaign_id = (to_int(rows[0].get("id")) or None) if rows else None
            workflows = self.workflows(campaign_id) if campaign_id else []
        except QueryError as e:
            logger.error(f"Campaign status lookup failed for requirement {requirement_id}: {e}")
            return {"success": False, "error": "db_query_failed", "message": str(e)}

        # A campaign row counts even when its id cannot be read.
        return {
            "success": True,
            "campaign_exists": bool(rows),
            "campaign_id": campaign_id,
            "selected_options": selected_options(workflows),
        }

    def create(self, requirement_id, options: CampaignOptions) -> dict:
        requirement_id = to_int(requirement_id)
        if requirement_id <= 0:
            return invalid_requirement()

        try:
            requirement_name = self.requirements.get_name(requirement_id)
        except QueryError as e:
            return {"success": False, "error": "db_query_failed", "message": str(e)}
        if not requirement_name:
            return {"success": False, "error": "Requirement not found"}

        current = self.status(requirement_id)
        if not current["success"]:
            return current
        if current["campaign_exists"]:
            return {"success": False, "error": "Campaign already exists for this requirement"}

        if not options.any_selected():
            return {"success": False, "error": "Please select at least one posting option"}

        try:
            self.query(
                f"INSERT INTO {CAMPAIGNS_TABLE} "
                "(campaign_name, ref_table_id, ref_table_name, status, start_date, created_at) "
                "VALUES (%s, %s, %s, 'active', %s, NOW())",
                (
                    requirement_name,
                    requirement_id,
                    self.resolver.resolve(LogicalTable.REQUIREMENT),
                    date.today().isoformat(),
                ),
            )
            campaign_id = self.find_campaign_id(requirement_id, newest=True)
        except QueryError as e:
            logger.error(f"Campaign insert failed for requirement {requirement_id}: {e}")
            return {"success": False, "error": "db_insert_failed", "message": str(e)}

        if not campaign_id:
            return {"success": False, "error": "Failed to create campaign"}

        inserted = []
        for entry in build_entries(options, now=datetime.now()):
            try:
                self.query(
                    f"INSERT INTO {REGISTRY_TABLE} "
                    "(campaign_id, workflow_name, webhook_url, connector_name, params, "
                    "last_page_fetched, depth_limit, interval_minutes, next_run_at, "
                    "last_executed_at, is_active, priority, retry_count, created_at) "
                    "VALUES (%s, %s, %s, %s, %s, 0, %s, %s, %s, %s, %s, %s, %s, NOW())",
                    (
                        campaign_id,
                        entry.workflow_name,
                        entry.webhook_url,
                        entry.connector_name,
                        entry.params,
                        entry.depth_limit,
                        entry.interval_minutes,
                        entry.next_run_at,
                        entry.last_executed_at,
                        entry.is_active,
                        entry.priority,
                        entry.retry_count,
                    ),
                )
            except QueryError as e:
                logger.error(
                    f"Workflow {entry.workflow_name!r} insert failed for campaign {campaign_id}: {e}"
                )
                return {
                    "success": False,
                    "error": "db_insert_failed",
                    "message": str(e),
                    "campaign_id": campaign_id,
                    "workflows": inserted,
                }
            inserted.append(entry.workflow_name)

        logger.info(f"Campaign {campaign_id} created for requirement {requirement_id}: {inserted}")
        return {
            "success": True,
            "message": "Campaign created successfully",
            "campaign_id": campaign_id,
            "workflows": inserted,
        }
