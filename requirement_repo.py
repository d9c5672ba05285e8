"""Requirement storage in the CRM's requirement table."""

import logging
from typing import Optional

from db import QueryError
from models import RequirementForm
from normalizer import decode
from tables import LogicalTable
from users import to_int

logger = logging.getLogger(__name__)

SAVED_MESSAGE = (
    "Your requirement is stored in CRM successfully. "
    "Please click on OK to create the campaign."
)
DUPLICATE_MESSAGE = (
    "Job title already exists in the database. "
    "Please provide a unique job title."
)

LIST_COLUMNS = (
    "bi_primary_id, requirement_name, client_name, "
    "requirement_received_date, job_location, requirement_status"
)


def _like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RequirementRepository:
    def __init__(self, query, resolver, users):
        self.query = query
        self.resolver = resolver
        self.users = users

    @property
    def table(self) -> str:
        return self.resolver.resolve(LogicalTable.REQUIREMENT)

    @property
    def client_table(self) -> str:
        return self.resolver.resolve(LogicalTable.CLIENT)

    def clients(self) -> list[dict]:
        table = self.client_table
        result = self.query(
            f"SELECT DISTINCT client_name FROM {table} "
            "WHERE client_name IS NOT NULL AND client_name <> '' "
            "ORDER BY client_name ASC"
        )
        return decode(result, table)

    def exists(self, name: Optional[str]) -> bool:
        """Exact-name check before insert. Fails open on query errors."""
        if not name:
            return False
        table = self.table
        try:
            result = self.query(
                f"SELECT bi_primary_id, requirement_name FROM {table} "
                "WHERE requirement_name = %s LIMIT 1",
                (name,),
            )
        except Exception as e:
            logger.warning(f"Duplicate check failed for {name!r}, allowing insert: {e}")
            return False

        return any(
            row.get("bi_primary_id") is not None or row.get("requirement_name") is not None
            for row in decode(result, table)
        )

    def get_name(self, requirement_id) -> Optional[str]:
        table = self.table
        result = self.query(
            f"SELECT bi_primary_id, requirement_name FROM {table} "
            "WHERE bi_primary_id = %s LIMIT 1",
            (to_int(requirement_id),),
        )
        rows = decode(result, table)
        if not rows:
            return None
        return rows[0].get("requirement_name") or None

    def client_industry(self, client_name: Optional[str]) -> Optional[str]:
        if not client_name:
            return None
        table = self.client_table
        try:
            result = self.query(
                f"SELECT client_industry1 FROM {table} WHERE client_name = %s LIMIT 1",
                (client_name,),
            )
        except Exception as e:
            logger.warning(f"Error fetching client industry for {client_name!r}: {e}")
            return None

        rows = decode(result, table)
        if not rows or rows[0].get("client_industry1") is None:
            return None
        return str(rows[0]["client_industry1"]).strip() or None

    def _assignee(self, user_id: int) -> Optional[str]:
        try:
            return self.users.full_name(user_id)
        except Exception as e:
            logger.warning(f"Error fetching user details for {user_id}: {e}")
            return None

    def insert(self, params: dict, created_by) -> dict:
        form = RequirementForm.model_validate(params)
        if self.exists(form.requirement_name):
            return {
                "success": False,
                "error": "duplicate_job_title",
                "message": DUPLICATE_MESSAGE,
                "field": "jobTitle",
            }
        if not form.requirement_name:
            return {
                "success": False,
                "error": "missing_field",
                "message": "Job Title is required",
                "field": "jobTitle",
            }

        user_id = to_int(created_by)
        row = form.columns()
        row["industry_name"] = self.client_industry(form.client_name)
        row["assign_to"] = self._assignee(user_id) if user_id > 0 else None
        row["created_by"] = max(user_id, 0)

        table = self.table
        columns = list(row)
        placeholders = ", ".join(["%s"] * len(columns))
        try:
            self.query(
                f"INSERT INTO {table} ({', '.join(columns)}, created_at) "
                f"VALUES ({placeholders}, CURRENT_DATE)",
                tuple(row[c] for c in columns),
            )
        except QueryError as e:
            logger.error(f"Requirement insert failed: {e}")
            return {"success": False, "error": "db_insert_failed", "message": str(e)}

        # The insert does not hand back the generated id; look it up.
        try:
            result = self.query(
                f"SELECT bi_primary_id, requirement_name FROM {table} "
                "WHERE requirement_name = %s AND client_name = %s "
                "ORDER BY bi_primary_id DESC LIMIT 1",
                (form.requirement_name, form.client_name),
            )
        except QueryError as e:
            logger.error(f"Could not read back requirement id: {e}")
            return {"success": False, "error": "db_fetch_id_failed", "message": str(e)}

        rows = decode(result, table)
        requirement_id = rows[0].get("bi_primary_id") if rows else None
        logger.info(f"Requirement {form.requirement_name!r} stored with id {requirement_id}")
        return {
            "success": True,
            "message": SAVED_MESSAGE,
            "bi_primary_id": requirement_id,
        }

    def list_open_for_user(self, user_id) -> list[dict]:
        """Open requirements assigned to the user, or all of them if the user is unknown."""
        user_name = None
        if to_int(user_id) > 0:
            try:
                user_name = self.users.full_name(user_id)
            except Exception as e:
                logger.warning(f"Error fetching user details for requirements: {e}")

        table = self.table
        if user_name:
            pattern = f"%{_like_escape(user_name)}%"
            result = self.query(
                f"SELECT {LIST_COLUMNS} FROM {table} "
                "WHERE (assign_to LIKE %s OR assign_to_others_1 LIKE %s "
                "OR assign_to_others_2 LIKE %s) "
                "AND requirement_status = 'Open' "
                "AND requirement_name IS NOT NULL AND requirement_name <> '' "
                "ORDER BY requirement_name ASC",
                (pattern, pattern, pattern),
            )
        else:
            result = self.query(
                f"SELECT {LIST_COLUMNS} FROM {table} "
                "WHERE requirement_status = 'Open' "
                "AND requirement_name IS NOT NULL AND requirement_name <> '' "
                "ORDER BY requirement_name ASC"
            )
        return decode(result, table)
