from fastapi import APIRouter, HTTPException, Security, Depends
from fastapi.responses import RedirectResponse
from fastapi.security import APIKeyCookie, HTTPBearer, HTTPAuthorizationCredentials
from urllib.parse import urlencode
import httpx
import jwt
import os
import logging

from app.api.middleware.database import setup_connection
from app.api.middleware.auth_token import *
from app.api.middleware.user import get_or_create_user, serialize_user
from app.api.middleware.misc import *

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

SESSION_COOKIE = "session"

session_cookie = APIKeyCookie(name=SESSION_COOKIE, auto_error=False)
bearer = HTTPBearer(auto_error=False)

async def verify_session(
    cookie_token: str | None = Security(session_cookie),
    credentials: HTTPAuthorizationCredentials | None = Security(bearer),
) -> dict:
    #? cookie first, bearer token when the cookie is missing or rejected
    tokens = [token for token in (cookie_token, credentials.credentials if credentials else None) if token]
    if not tokens:
        raise HTTPException(status_code=401, detail="Authentication required")

    error = None
    for token in tokens:
        try:
            decoded = decode_token(token)
            if is_token_expired(decoded):
                raise Exception("Token expired")
            return decoded
        except Exception as e:
            error = e

    raise HTTPException(status_code=401, detail=f"Invalid session: {str(error)}")

def session_user_id(credentials: dict) -> int:
    return int(credentials["user_id"])

def issuer_url():
    return os.getenv("AUTH_ISSUER_BASE_URL", "").rstrip("/")

def base_url():
    return os.getenv("AUTH_BASE_URL", "http://127.0.0.1:8000").rstrip("/")

def callback_url():
    return f"{base_url()}/api/auth/callback"

def safe_return_path(path):
    #? only allow local redirects
    if not path or not path.startswith("/") or path.startswith("//"):
        return "/"
    return path

@router.get("/login")
async def login(return_to: str = "/dashboard"):
    params = {
        "response_type": "code",
        "client_id": os.getenv("AUTH_CLIENT_ID"),
        "redirect_uri": callback_url(),
        "scope": "openid profile email",
        "state": safe_return_path(return_to),
    }
    return RedirectResponse(f"{issuer_url()}/authorize?{urlencode(params)}", status_code=302)

async def exchange_code(code: str) -> dict:
    """Swap an authorization code for the provider's id token claims."""
    async with httpx.AsyncClient(timeout=10) as client:
        response = await client.post(
            f"{issuer_url()}/oauth/token",
            data={
                "grant_type": "authorization_code",
                "client_id": os.getenv("AUTH_CLIENT_ID"),
                "client_secret": os.getenv("AUTH_CLIENT_SECRET"),
                "code": code,
                "redirect_uri": callback_url(),
            },
        )
        response.raise_for_status()
        id_token = response.json()["id_token"]

    # received directly from the token endpoint over tls
    return jwt.decode(id_token, options={"verify_signature": False})

@router.get("/callback")
async def callback(code: str, state: str = "/"):
    conn = None
    try:
        claims = await exchange_code(code)

        conn = await setup_connection()
        user = await get_or_create_user(conn, claims)

    except SafeError as e:
        raise e
    except httpx.HTTPError as e:
        logger.error("Auth provider code exchange failed: %s", e)
        raise HTTPException(status_code=401, detail="Authentication failed")
    except Exception as e:
        logger.exception("Auth callback failed")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()

    days = session_days()
    token = generate_token(user["email"], user["id"], name=user["name"], days=days)

    response = RedirectResponse(safe_return_path(state), status_code=302)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=base_url().startswith("https"),
    )
    return response

@router.get("/logout")
async def logout():
    params = {
        "client_id": os.getenv("AUTH_CLIENT_ID"),
        "returnTo": base_url(),
    }
    response = RedirectResponse(f"{issuer_url()}/v2/logout?{urlencode(params)}", status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response

@router.get("/me")
async def me(credentials: dict = Depends(verify_session)):
    conn = None
    try:
        conn = await setup_connection()

        user = await conn.fetchrow(
            """
            select *
            from users
            where id = $1
            """, session_user_id(credentials)
        )
        if user is None:
            raise NotFoundError("User not found")

        return {
            "user": serialize_user(user)
        }

    except SafeError as e:
        raise e
    except Exception as e:
        logger.exception("Failed to fetch session user")
        raise Exception('uncaught error')
    finally:
        if conn: await conn.close()
