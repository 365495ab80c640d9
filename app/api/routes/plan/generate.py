from fastapi import APIRouter, Depends, Body
from pydantic import ValidationError
import json
import time
import logging

from app.api.middleware.database import setup_connection
from app.api.middleware.ai_usage import AIUsageMetrics, log_ai_usage, check_user_quota
from app.api.middleware.openai_client import call_openai, estimate_cost, usage_counts, get_model
from app.api.middleware.fitness_coach import *
from app.api.routes.auth import verify_session, session_user_id
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter()

PLAN_TEMPERATURE = 0.3
PLAN_MAX_TOKENS = 10000
PLAN_RETRIES = 2
PLAN_TIMEOUT = 60 # seconds

REQUEST_TYPE = "plan_generation"

def elapsed_ms(start_time):
    if start_time is None: return 0
    return int((time.monotonic() - start_time) * 1000)

@router.post("")
async def plan_generate(body: dict = Body(...), credentials: dict = Depends(verify_session)):
    user_id = session_user_id(credentials)
    start_time = None

    try:
        quota = await fetch_user_quota(user_id)
        if not quota.can_proceed:
            raise QuotaExceededError(quota.reason)

        try:
            profile = PlanRequest.model_validate(body)
        except ValidationError as e:
            raise SafeError("Invalid request data", details=validation_issues(e))

        logger.info(
            "AI plan generation request: user_id=%s profile=%s",
            user_id, profile.model_dump(exclude_none=True)
        )

        start_time = time.monotonic()
        completion = await call_openai(
            build_plan_messages(profile),
            temperature=PLAN_TEMPERATURE,
            max_tokens=PLAN_MAX_TOKENS,
            retries=PLAN_RETRIES,
            timeout=PLAN_TIMEOUT,
        )
        request_duration = elapsed_ms(start_time)

        choice = completion.choices[0] if completion.choices else None
        content = choice.message.content if choice else None
        if not content:
            raise Exception("No response content from OpenAI")

        if choice.finish_reason == "length":
            logger.error("OpenAI response was truncated due to token limit")
            raise Exception("AI response was incomplete. Please try again with fewer requirements.")

        counts = usage_counts(completion)
        cost = estimate_cost(counts["prompt_tokens"], counts["completion_tokens"])

        try:
            plan = normalize_plan_response(content)
        except PlanFormatError as e:
            logger.error("Failed to parse AI response: %s %s", e, e.errors)
            logger.error("Raw AI response (first 500 chars): %s", content[:500])
            await log_ai_usage(AIUsageMetrics(
                user_id=user_id,
                request_type=REQUEST_TYPE,
                cost=cost,
                model=completion.model,
                success=False,
                error_message=f"Parse error: {e}",
                request_duration=elapsed_ms(start_time),
                **counts,
            ))
            raise UpstreamFormatError("AI generated invalid response format", details=str(e))

        plan_id = await save_plan(user_id, profile, plan, completion.model, cost)

        logger.info(
            "AI plan generated: user_id=%s plan_id=%s weeks=%s workouts_per_week=%s tokens=%s",
            user_id, plan_id, plan.duration_weeks, plan.workouts_per_week, counts
        )

        await log_ai_usage(AIUsageMetrics(
            user_id=user_id,
            request_type=REQUEST_TYPE,
            cost=cost,
            model=completion.model,
            success=True,
            request_duration=request_duration,
            **counts,
        ))

        return {
            "success": True,
            "plan": {
                "id": plan_id,
                "title": plan.title,
                "description": plan.description,
                "duration_weeks": plan.duration_weeks,
                "workouts_per_week": plan.workouts_per_week,
                "difficulty_level": plan.difficulty_level,
                "weeks": plan.model_dump(exclude_none=True)["weeks"],
            },
            "metadata": {
                "generated_at": utc_now().isoformat(),
                "token_usage": counts,
                "model": completion.model,
            }
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("AI plan generation error")

        await log_ai_usage(AIUsageMetrics(
            user_id=user_id,
            request_type=REQUEST_TYPE,
            prompt_tokens=0,
            completion_tokens=0,
            total_tokens=0,
            cost=0,
            model=get_model(),
            success=False,
            error_message=str(e),
            request_duration=elapsed_ms(start_time),
        ))

        raise upstream_error(e)

def upstream_error(error: Exception) -> SafeError:
    message = str(error).lower()

    if "quota exceeded" in message:
        return UpstreamUnavailableError("AI service temporarily unavailable. Please try again later.")

    if "invalid api key" in message:
        return InternalError("AI service configuration error")

    return InternalError("Failed to generate workout plan. Please try again.")

async def fetch_user_quota(user_id):
    conn = None
    try:
        conn = await setup_connection()
        return await check_user_quota(conn, user_id)
    finally:
        if conn: await conn.close()

def plan_day_values(week, workout):
    return {
        "day_of_week": day_of_week_map[workout.day],
        "target_duration": workout.duration_minutes,
        "target_calories": workout.estimated_calories,
        "description": workout.description or workout.workout_type,
        "ai_exercise_data": {
            "week": week.week_number,
            "workout_type": workout.workout_type,
            "exercises": [exercise.model_dump(exclude_none=True) for exercise in workout.exercises],
        },
    }

async def save_plan(user_id, profile: PlanRequest, plan: WorkoutPlan, model, cost):
    conn = tx = None
    try:
        conn = await setup_connection()
        tx = conn.transaction()
        await tx.start()

        default_workout_type_id = await conn.fetchval(
            """
            select id
            from workout_types
            order by id
            limit 1
            """
        ) or 1

        plan_id = await conn.fetchval(
            """
            insert into plans
            (user_id, title, description, week_start, is_active, ai_generated,
             ai_prompt_data, ai_model_version, ai_generation_cost)
            values
            ($1, $2, $3, $4, true, true, $5, $6, $7)
            returning id
            """,
            user_id,
            plan.title,
            plan.description,
            utc_now(),
            json.dumps(profile.model_dump(exclude_none=True)),
            model,
            cost,
        )

        for week in plan.weeks:
            for workout in week.workouts:
                values = plan_day_values(week, workout)
                await conn.execute(
                    """
                    insert into plan_days
                    (plan_id, day_of_week, workout_type_id, target_duration,
                     target_calories, description, ai_exercise_data, is_completed)
                    values
                    ($1, $2, $3, $4, $5, $6, $7, false)
                    """,
                    plan_id,
                    values["day_of_week"],
                    default_workout_type_id,
                    values["target_duration"],
                    values["target_calories"],
                    values["description"],
                    json.dumps(values["ai_exercise_data"]),
                )

        await tx.commit()
        return plan_id

    except Exception as e:
        if tx: await tx.rollback()
        raise e
    finally:
        if conn: await conn.close()
