"""In-memory stand-ins for the CRM store and the shared cache."""

import re
from collections import Counter

from db import QueryError


def _like_unescape(pattern: str) -> str:
    text = pattern[1:-1] if pattern.startswith("%") and pattern.endswith("%") else pattern
    return text.replace("\\%", "%").replace("\\_", "_").replace("\\\\", "\\")


class MemoryStore:
    """Stand-in for RedisStore."""

    def __init__(self, data=None, broken=False):
        self.data = dict(data or {})
        self.broken = broken
        self.writes = []

    def get(self, key, default=None):
        if self.broken:
            raise ConnectionError("cache down")
        return self.data.get(key, default)

    def set(self, key, value):
        if self.broken:
            raise ConnectionError("cache down")
        self.writes.append(key)
        self.data[key] = value


class FakeCRM:
    """In-memory CRM answering the statements the service issues.

    shape selects how results come back: "flat" rows, an "envelope"
    {status, data}, or "nested" rows keyed by table name with computed
    columns under "0".
    """

    def __init__(self, shape="flat"):
        self.shape = shape
        self.calls = []
        self.fail_on = None
        self.module_files_available = True
        self.module_files = [
            {"filename": "bi_t99s", "pagename": "Post Requirement"},
            {"filename": "bi_t98s", "pagename": "Client Master"},
            {"filename": "bi_t97s", "pagename": "Scraped Leads"},
        ]
        self.users = {
            7: {"first_name": "Asha", "last_name": "Rao", "role": 5, "status": "1"},
            8: {"first_name": "Ben", "last_name": None, "role": 5, "status": "1"},
            9: {"first_name": "Cara", "last_name": "Diaz", "role": 2, "status": "1"},
        }
        self.clients = [
            {"client_name": "Acme", "client_industry1": "  Software "},
            {"client_name": "Globex", "client_industry1": ""},
        ]
        self.requirements = []
        self.campaigns = []
        self.registry = []
        self.profiles = []

    # helpers for tests

    def add_requirement(self, name, client="Acme", status="Open", **extra):
        row = {
            "bi_primary_id": len(self.requirements) + 1,
            "requirement_name": name,
            "client_name": client,
            "requirement_status": status,
            "requirement_received_date": "2026-01-05",
            "job_location": "Pune",
            "assign_to": None,
            "assign_to_others_1": None,
            "assign_to_others_2": None,
        }
        row.update(extra)
        self.requirements.append(row)
        return row["bi_primary_id"]

    def add_profiles(self, requirement_id, source, count):
        for _ in range(count):
            self.profiles.append({"campaign_id": requirement_id, "source": source})

    def statements(self, prefix):
        return [sql for sql, _ in self.calls if sql.startswith(prefix)]

    # query function

    def _answer(self, rows, table, computed=()):
        rows = [dict(row) for row in rows]
        if self.shape == "flat":
            return rows
        if self.shape == "nested":
            nested = []
            for row in rows:
                item = {table: {k: v for k, v in row.items() if k not in computed}}
                extra = {k: v for k, v in row.items() if k in computed}
                if extra:
                    item["0"] = extra
                nested.append(item)
            rows = nested
        return {"status": "success", "data": rows}

    def __call__(self, sql, params=None):
        sql = " ".join(sql.split())
        params = tuple(params or ())
        self.calls.append((sql, params))
        if self.fail_on and self.fail_on in sql:
            raise QueryError(f"simulated failure: {self.fail_on}")

        if sql.startswith("SELECT filename, pagename, module_name FROM module_files"):
            if not self.module_files_available:
                raise QueryError("module_files unavailable")
            return self._answer(self.module_files, "module_files")

        if sql.startswith("SELECT filename, pagename FROM module_files"):
            if not self.module_files_available:
                raise QueryError("module_files unavailable")
            word = params[1].strip("%").lower()
            rows = [f for f in self.module_files if word in f["pagename"].lower()][:1]
            return self._answer(rows, "module_files")

        if sql.startswith("SELECT first_name, last_name FROM users"):
            user = self.users.get(params[0])
            rows = [{"first_name": user["first_name"], "last_name": user["last_name"]}] if user else []
            return self._answer(rows, "users")

        if sql.startswith("SELECT user_id, CONCAT_WS"):
            rows = [
                {"user_id": uid, "fullname": " ".join(p for p in (u["first_name"], u["last_name"]) if p)}
                for uid, u in self.users.items()
                if u["role"] == params[0] and u["status"] == params[1]
            ]
            rows.sort(key=lambda r: r["fullname"])
            return self._answer(rows, "users", computed=("fullname",))

        m = re.match(r"SELECT DISTINCT client_name FROM (\w+)", sql)
        if m:
            names = sorted({c["client_name"] for c in self.clients if c["client_name"]})
            return self._answer([{"client_name": n} for n in names], m.group(1))

        m = re.match(r"SELECT client_industry1 FROM (\w+) WHERE client_name = %s", sql)
        if m:
            rows = [
                {"client_industry1": c["client_industry1"]}
                for c in self.clients if c["client_name"] == params[0]
            ][:1]
            return self._answer(rows, m.group(1))

        m = re.match(r"INSERT INTO (bi_\w+) \((.*?), created_at\) VALUES", sql)
        if m:
            columns = [c.strip() for c in m.group(2).split(",")]
            row = dict(zip(columns, params))
            row["bi_primary_id"] = len(self.requirements) + 1
            row["created_at"] = "today"
            self.requirements.append(row)
            return []

        m = re.match(r"SELECT bi_primary_id, requirement_name FROM (\w+) WHERE (.*)", sql)
        if m:
            table, where = m.groups()
            if where.startswith("requirement_name = %s AND client_name = %s"):
                rows = [
                    r for r in self.requirements
                    if r["requirement_name"] == params[0] and r["client_name"] == params[1]
                ]
                rows = sorted(rows, key=lambda r: r["bi_primary_id"], reverse=True)[:1]
            elif where.startswith("requirement_name = %s"):
                rows = [r for r in self.requirements if r["requirement_name"] == params[0]][:1]
            else:
                rows = [r for r in self.requirements if r["bi_primary_id"] == params[0]][:1]
            rows = [
                {"bi_primary_id": r["bi_primary_id"], "requirement_name": r["requirement_name"]}
                for r in rows
            ]
            return self._answer(rows, table)

        m = re.match(r"SELECT bi_primary_id, requirement_name, client_name, .*? FROM (\w+) WHERE (.*)", sql)
        if m:
            table, where = m.groups()
            rows = [
                r for r in self.requirements
                if r.get("requirement_status") == "Open" and r.get("requirement_name")
            ]
            if where.startswith("(assign_to LIKE"):
                needle = _like_unescape(params[0])
                rows = [
                    r for r in rows
                    if any(
                        needle in (r.get(col) or "")
                        for col in ("assign_to", "assign_to_others_1", "assign_to_others_2")
                    )
                ]
            rows = sorted(rows, key=lambda r: r["requirement_name"])
            columns = (
                "bi_primary_id", "requirement_name", "client_name",
                "requirement_received_date", "job_location", "requirement_status",
            )
            return self._answer([{c: r.get(c) for c in columns} for r in rows], table)

        if sql.startswith("SELECT id FROM workflow_campaigns WHERE ref_table_id = %s"):
            rows = [c for c in self.campaigns if c["ref_table_id"] == params[0]]
            if "ORDER BY id DESC" in sql:
                rows = sorted(rows, key=lambda c: c["id"], reverse=True)
            return self._answer([{"id": c["id"]} for c in rows[:1]], "workflow_campaigns")

        if sql.startswith("INSERT INTO workflow_campaigns"):
            name, ref_id, ref_table, start_date = params
            self.campaigns.append({
                "id": 100 + len(self.campaigns),
                "campaign_name": name,
                "ref_table_id": ref_id,
                "ref_table_name": ref_table,
                "status": "active",
                "start_date": start_date,
            })
            return []

        if sql.startswith("SELECT workflow_name, params FROM workflow_registry"):
            rows = [
                {"workflow_name": w["workflow_name"], "params": w["params"]}
                for w in self.registry if w["campaign_id"] == params[0]
            ]
            return self._answer(rows, "workflow_registry")

        if sql.startswith("SELECT workflow_name FROM workflow_registry"):
            rows = [
                {"workflow_name": w["workflow_name"]}
                for w in self.registry
                if w["campaign_id"] == params[0] and w["workflow_name"] != params[1]
            ]
            return self._answer(rows, "workflow_registry")

        if sql.startswith("INSERT INTO workflow_registry"):
            keys = (
                "campaign_id", "workflow_name", "webhook_url", "connector_name", "params",
                "depth_limit", "interval_minutes", "next_run_at", "last_executed_at",
                "is_active", "priority", "retry_count",
            )
            self.registry.append(dict(zip(keys, params)))
            return []

        m = re.match(r"SELECT source, COUNT\(bi_primary_id\) AS profiles FROM (\w+) WHERE campaign_id = %s", sql)
        if m:
            counts = Counter(p["source"] for p in self.profiles if p["campaign_id"] == params[0])
            rows = [{"source": s, "profiles": str(n)} for s, n in counts.items()]
            return self._answer(rows, m.group(1), computed=("profiles",))

        raise AssertionError(f"unexpected statement: {sql}")
