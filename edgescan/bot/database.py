"""SQLite persistence: rate-limit timestamps and the AI usage audit log."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ..analysis.cost import CostTracker
from ..analysis.models import AnalysisResult, Usage
from ..providers.catalog import ProviderId

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/edgescan.db"

CREATE_TABLES_SQL = """
-- Last call time per provider:model (epoch seconds)
CREATE TABLE IF NOT EXISTS rate_limits (
    key TEXT PRIMARY KEY,
    last_call REAL NOT NULL
);

-- One row per AI call, with the full prompt/response for audit
CREATE TABLE IF NOT EXISTS ai_usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    input_tokens INTEGER NOT NULL,
    output_tokens INTEGER NOT NULL,
    cost_usd REAL NOT NULL,
    web_searches INTEGER DEFAULT 0,
    search_queries TEXT,
    summary TEXT,
    recommendations INTEGER DEFAULT 0,
    response_time_ms INTEGER,
    prompt TEXT,
    raw_response TEXT,
    result_json TEXT
);

CREATE INDEX IF NOT EXISTS idx_ai_usage_timestamp ON ai_usage(timestamp);
"""


class Database:
    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    async def init_schema(self) -> None:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.executescript(CREATE_TABLES_SQL)
            await db.commit()

    async def reset(self) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DROP TABLE IF EXISTS rate_limits")
            await db.execute("DROP TABLE IF EXISTS ai_usage")
            await db.commit()
        await self.init_schema()

    # ── Rate limits ──────────────────────────────────────────────────

    async def get_last_call(self, key: str) -> Optional[float]:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT last_call FROM rate_limits WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0] if row else None

    async def set_last_call(self, key: str, ts: float) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO rate_limits (key, last_call) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET last_call = excluded.last_call",
                (key, ts),
            )
            await db.commit()

    async def load_last_calls(self) -> dict[str, float]:
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT key, last_call FROM rate_limits") as cursor:
                rows = await cursor.fetchall()
        return {key: last_call for key, last_call in rows}

    # ── Usage audit log ──────────────────────────────────────────────

    async def record_result(self, provider: ProviderId | str, result: AnalysisResult) -> int:
        """Append one analysis call to the audit log; returns the row id."""
        usage = result.usage
        provider_name = provider.value if isinstance(provider, ProviderId) else str(provider)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO ai_usage (
                    timestamp, provider, model, input_tokens, output_tokens, cost_usd,
                    web_searches, search_queries, summary, recommendations,
                    response_time_ms, prompt, raw_response, result_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    usage.timestamp.isoformat(),
                    provider_name,
                    usage.model,
                    usage.input_tokens,
                    usage.output_tokens,
                    usage.cost_usd,
                    usage.web_searches,
                    json.dumps(list(usage.search_queries)),
                    result.summary,
                    len(result.analyses),
                    result.response_time_ms,
                    result.prompt,
                    result.raw_response,
                    json.dumps(result.to_dict(), default=str),
                ),
            )
            await db.commit()
            row_id = cursor.lastrowid
        logger.debug("Recorded AI usage row %s (%s/%s)", row_id, provider_name, usage.model)
        return row_id

    async def usage_history(self, limit: int = 100) -> list[dict[str, Any]]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM ai_usage ORDER BY id DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def load_cost_tracker(self) -> CostTracker:
        """Rebuild running totals from the audit log."""
        tracker = CostTracker()
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT timestamp, model, input_tokens, output_tokens, cost_usd, "
                "web_searches, search_queries FROM ai_usage ORDER BY id"
            ) as cursor:
                async for ts, model, inp, out, cost, searches, queries in cursor:
                    tracker.total_calls += 1
                    tracker.total_input_tokens += inp
                    tracker.total_output_tokens += out
                    tracker.total_cost_usd += cost
                    tracker.history.append(Usage(
                        input_tokens=inp,
                        output_tokens=out,
                        cost_usd=cost,
                        model=model,
                        timestamp=datetime.fromisoformat(ts),
                        web_searches=searches or 0,
                        search_queries=tuple(json.loads(queries or "[]")),
                    ))
        return tracker


class DatabaseTimestampStore:
    """``TimestampStore`` backed by the ``rate_limits`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def get(self, key: str) -> Optional[float]:
        return await self.db.get_last_call(key)

    async def set(self, key: str, ts: float) -> None:
        await self.db.set_last_call(key, ts)
