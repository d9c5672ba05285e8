"""API functions reachable under .../web/<name>.

Every handler takes the service bundle and the decoded request parameters
and returns a JSON-able dict carrying its own success/error fields.
"""

import logging
from dataclasses import dataclass

from cache import get_store
from campaigns import CampaignOrchestrator
from db import QueryError, execute_query
from features import FeatureAggregator
from models import CampaignOptions, truthy
from requirement_repo import RequirementRepository
from tables import TableCache, TableResolver
from users import UserDirectory, to_int

logger = logging.getLogger(__name__)


@dataclass
class Services:
    resolver: TableResolver
    users: UserDirectory
    requirements: RequirementRepository
    campaigns: CampaignOrchestrator
    features: FeatureAggregator


def build_services(query=execute_query, store=None) -> Services:
    """Wire every component around one query function and one table cache."""
    resolver = TableResolver(query, TableCache(store))
    users = UserDirectory(query)
    requirements = RequirementRepository(query, resolver, users)
    campaigns = CampaignOrchestrator(query, resolver, requirements)
    return Services(
        resolver=resolver,
        users=users,
        requirements=requirements,
        campaigns=campaigns,
        features=FeatureAggregator(query, resolver, campaigns),
    )


def default_services() -> Services:
    try:
        store = get_store()
    except Exception as e:
        logger.error(f"Persistent cache unavailable, using in-process cache only: {e}")
        store = None
    return build_services(execute_query, store)


def _listing(rows: list) -> dict:
    return {"success": True, "status": "success", "data": rows}


def _db_failure(e: Exception) -> dict:
    return {"success": False, "error": "db_query_failed", "message": str(e)}


def get_clients(services: Services, params: dict) -> dict:
    try:
        return _listing(services.requirements.clients())
    except QueryError as e:
        return _db_failure(e)


def get_requirements(services: Services, params: dict) -> dict:
    try:
        return _listing(services.requirements.list_open_for_user(params.get("user_id")))
    except QueryError as e:
        return _db_failure(e)


def get_managers(services: Services, params: dict) -> dict:
    try:
        return _listing(services.users.managers())
    except QueryError as e:
        return _db_failure(e)


def get_team_leaders(services: Services, params: dict) -> dict:
    try:
        return _listing(services.users.team_leaders())
    except QueryError as e:
        return _db_failure(e)


def get_user_name(services: Services, params: dict) -> dict:
    if to_int(params.get("user_id")) <= 0:
        return {"success": False, "error": "Invalid user ID"}
    try:
        name = services.users.full_name(params.get("user_id"))
    except QueryError as e:
        return _db_failure(e)
    if not name:
        return {"success": False, "error": "User not found"}
    return {"success": True, "full_name": name}


def get_campaign_status(services: Services, params: dict) -> dict:
    return services.campaigns.status(params.get("requirement_id"))


def get_campaign_features(services: Services, params: dict) -> dict:
    return services.features.features(
        params.get("requirement_id"),
        debug=truthy(params.get("debug", False)),
    )


def create_campaign(services: Services, params: dict) -> dict:
    options = CampaignOptions.model_validate(params)
    return services.campaigns.create(params.get("requirement_id"), options)


def add_requirement(services: Services, params: dict) -> dict:
    return services.requirements.insert(params, params.get("user_id"))


# name -> allowed HTTP methods and handler
API = {
    "get_clients": {"method": ["POST"], "handler": get_clients},
    "get_requirements": {"method": ["POST"], "handler": get_requirements},
    "get_managers": {"method": ["POST"], "handler": get_managers},
    "get_team_leaders": {"method": ["POST"], "handler": get_team_leaders},
    "get_campaign_status": {"method": ["POST"], "handler": get_campaign_status},
    "get_campaign_features": {"method": ["POST"], "handler": get_campaign_features},
    "create_campaign": {"method": ["POST"], "handler": create_campaign},
    "add_requirement": {"method": ["POST"], "handler": add_requirement},
    "get_user_name": {"method": ["POST"], "handler": get_user_name},
}
