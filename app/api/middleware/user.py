from app.api.middleware.misc import *

MAX_NAME_LENGTH = 100

def clean_name(name):
    if not name: return None
    name = name.strip()[:MAX_NAME_LENGTH]
    return name or None

async def get_or_create_user(conn, claims: dict):
    """Find the local user for identity-provider claims, creating or linking as needed."""
    auth_id = claims.get("sub")
    email = claims.get("email")
    if not auth_id or not email:
        raise SafeError("Invalid auth provider user data")

    name = clean_name(claims.get("name"))
    picture = claims.get("picture")

    user = await conn.fetchrow(
        """
        select *
        from users
        where auth_id = $1
        """, auth_id
    )

    if user is None:
        by_email = await conn.fetchrow(
            """
            select *
            from users
            where lower(email) = lower($1)
            """, email
        )
        if by_email is not None:
            return await conn.fetchrow(
                """
                update users
                set auth_id = $1
                where id = $2
                returning *
                """, auth_id, by_email["id"]
            )

        return await conn.fetchrow(
            """
            insert into users
            (auth_id, email, name, picture)
            values
            ($1, $2, $3, $4)
            returning *
            """, auth_id, email, name or email.split("@")[0], picture
        )

    updates = {}
    if user["email"] != email:
        updates["email"] = email
    if name and user["name"] != name:
        updates["name"] = name
    if picture and user["picture"] != picture:
        updates["picture"] = picture

    if not updates:
        return user

    #? column names come from the fixed keys above
    assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(updates, start=1))
    return await conn.fetchrow(
        f"""
        update users
        set {assignments}
        where id = ${len(updates) + 1}
        returning *
        """, *updates.values(), user["id"]
    )

def serialize_user(user):
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "picture": user["picture"],
    }
