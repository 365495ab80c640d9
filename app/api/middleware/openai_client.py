import os
import math
import asyncio
import logging
import openai
from openai import AsyncOpenAI
from dotenv import load_dotenv

load_dotenv(override=True)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

# usd per 1K tokens
INPUT_COST_PER_1K = 0.01
OUTPUT_COST_PER_1K = 0.03

NON_RETRYABLE_PHRASES = ("invalid api key", "quota exceeded", "model not found")
NON_RETRYABLE_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.NotFoundError,
)

_client = None

def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"))
    return _client

def get_model() -> str:
    return os.getenv("OPENAI_MODEL", DEFAULT_MODEL)

def estimate_token_count(text: str) -> int:
    """Rough estimate, one token is about 0.75 words."""
    words = len(text.split())
    return math.ceil(words / 0.75)

def estimate_cost(prompt_tokens: int, completion_tokens: int) -> float:
    input_cost = (prompt_tokens / 1000) * INPUT_COST_PER_1K
    output_cost = (completion_tokens / 1000) * OUTPUT_COST_PER_1K
    return input_cost + output_cost

def usage_counts(completion) -> dict:
    usage = getattr(completion, "usage", None)
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
        "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
        "total_tokens": getattr(usage, "total_tokens", 0) or 0,
    }

def is_retryable(error: Exception) -> bool:
    if isinstance(error, NON_RETRYABLE_ERRORS):
        return False
    if isinstance(error, openai.RateLimitError) and getattr(error, "code", None) == "insufficient_quota":
        return False
    message = str(error).lower()
    return not any(phrase in message for phrase in NON_RETRYABLE_PHRASES)

def backoff_delay(attempt: int) -> int:
    return 2 ** attempt

async def wait_before_retry(seconds: int):
    await asyncio.sleep(seconds)

async def call_openai(messages, temperature=0.3, max_tokens=2000, retries=3, timeout=30, client=None):
    """Request a chat completion, retrying transient failures.

    Every attempt is raced against ``timeout`` seconds. Authentication, quota
    and unknown-model errors are raised straight away, anything else is
    retried after ``2 ** attempt`` seconds until ``retries`` attempts are used.
    """
    client = client or get_client()
    model = get_model()
    last_error = None

    for attempt in range(1, retries + 1):
        try:
            try:
                completion = await asyncio.wait_for(
                    client.chat.completions.create(
                        model=model,
                        messages=messages,
                        temperature=temperature,
                        max_tokens=max_tokens,
                        top_p=0.9,
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                raise TimeoutError("OpenAI API timeout")

            counts = usage_counts(completion)
            logger.info(
                "OpenAI API call - attempt %d: tokens=%s model=%s cost=%.5f",
                attempt,
                counts,
                getattr(completion, "model", model),
                estimate_cost(counts["prompt_tokens"], counts["completion_tokens"]),
            )
            return completion

        except Exception as e:
            last_error = e
            logger.error("OpenAI API error - attempt %d: %s", attempt, e)

            if not is_retryable(e):
                raise

            if attempt < retries:
                delay = backoff_delay(attempt)
                logger.info("Retrying OpenAI API call in %ds", delay)
                await wait_before_retry(delay)

    if last_error is None:
        raise RuntimeError("OpenAI API failed after retries")
    raise last_error
