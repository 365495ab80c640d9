import logging
from dataclasses import dataclass, field
from typing import Optional

from app.api.middleware.database import setup_connection
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

DAILY_REQUEST_LIMIT = 10
MONTHLY_COST_LIMIT = 5.0 # usd
DAILY_TOKEN_LIMIT = 50000

@dataclass
class AIUsageMetrics:
    user_id: int
    request_type: request_type_literal
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost: float
    model: str
    success: bool
    request_duration: int #? ms
    error_message: Optional[str] = None

@dataclass
class UsageSummary:
    request_count: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    success_rate: float = 0.0

    def to_dict(self):
        return {
            "request_count": self.request_count,
            "total_tokens": self.total_tokens,
            "total_cost": round(self.total_cost, 6),
            "success_rate": self.success_rate,
        }

@dataclass
class QuotaCheck:
    can_proceed: bool
    reason: Optional[str] = None

    def to_dict(self):
        result = {"can_proceed": self.can_proceed}
        if self.reason is not None:
            result["reason"] = self.reason
        return result

@dataclass
class AIAnalytics:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    average_request_duration: float = 0.0
    requests_by_type: dict = field(default_factory=dict)
    model_usage: dict = field(default_factory=dict)

async def log_ai_usage(metrics: AIUsageMetrics):
    """Record one AI request. Errors are logged and swallowed."""
    conn = None
    try:
        conn = await setup_connection()
        await conn.execute(
            """
            insert into ai_usage_logs
            (user_id, request_type, prompt_tokens, completion_tokens, total_tokens,
             cost, model, success, error_message, request_duration, timestamp)
            values
            ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, now())
            """,
            metrics.user_id,
            metrics.request_type,
            metrics.prompt_tokens,
            metrics.completion_tokens,
            metrics.total_tokens,
            metrics.cost,
            metrics.model,
            metrics.success,
            metrics.error_message,
            metrics.request_duration,
        )
    except Exception as e:
        logger.error("Failed to log AI usage: %s", e)
    finally:
        if conn: await conn.close()

def summarise_usage(row) -> UsageSummary:
    if row is None or not row["request_count"]:
        return UsageSummary()

    request_count = row["request_count"]
    return UsageSummary(
        request_count=request_count,
        total_tokens=int(row["total_tokens"] or 0),
        total_cost=float(row["total_cost"] or 0),
        success_rate=(row["success_count"] or 0) / request_count * 100,
    )

async def get_user_ai_usage(conn, user_id, days=30) -> UsageSummary:
    row = await conn.fetchrow(
        """
        select
            count(*) as request_count,
            coalesce(sum(total_tokens), 0) as total_tokens,
            coalesce(sum(cost), 0) as total_cost,
            count(*) filter (where success) as success_count
        from ai_usage_logs
        where user_id = $1
        and timestamp >= now() - make_interval(days => $2)
        """, user_id, days
    )
    return summarise_usage(row)

def evaluate_quota(daily: UsageSummary, monthly: UsageSummary) -> QuotaCheck:
    if daily.request_count >= DAILY_REQUEST_LIMIT:
        return QuotaCheck(False, "Daily request limit exceeded")

    if monthly.total_cost >= MONTHLY_COST_LIMIT:
        return QuotaCheck(False, "Monthly cost limit exceeded")

    if daily.total_tokens >= DAILY_TOKEN_LIMIT:
        return QuotaCheck(False, "Daily token limit exceeded")

    return QuotaCheck(True)

async def check_user_quota(conn, user_id) -> QuotaCheck:
    daily = await get_user_ai_usage(conn, user_id, 1)
    monthly = await get_user_ai_usage(conn, user_id, 30)
    return evaluate_quota(daily, monthly)

def build_analytics(rows) -> AIAnalytics:
    analytics = AIAnalytics()

    total_duration = 0
    for row in rows:
        analytics.total_requests += 1
        if row["success"]:
            analytics.successful_requests += 1
        else:
            analytics.failed_requests += 1
        analytics.total_cost += float(row["cost"] or 0)
        analytics.total_tokens += row["total_tokens"] or 0
        total_duration += row["request_duration"] or 0

        request_type = row["request_type"]
        analytics.requests_by_type[request_type] = analytics.requests_by_type.get(request_type, 0) + 1
        model = row["model"]
        analytics.model_usage[model] = analytics.model_usage.get(model, 0) + 1

    if analytics.total_requests > 0:
        analytics.average_request_duration = total_duration / analytics.total_requests

    return analytics

async def get_ai_analytics(conn, days=7) -> AIAnalytics:
    rows = await conn.fetch(
        """
        select request_type, total_tokens, cost, model, success, request_duration
        from ai_usage_logs
        where timestamp >= now() - make_interval(days => $1)
        """, days
    )
    return build_analytics(rows)
