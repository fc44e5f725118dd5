"""Supabase client configuration and query helpers."""

from typing import Any, Optional

from fastapi import HTTPException
from supabase import Client, ClientOptions, create_client

from src.utils.logger import supabase_logger as sb_logger
from src.utils.settings import supabase_get_anon_key, supabase_get_credentials


_client: Optional[Client] = None
_auth_client: Optional[Any] = None


def _create_supabase_client() -> Client:
    """Create the service-role client used for tables, storage and functions."""
    url, key = supabase_get_credentials()

    sb_logger.info("🔧 Initializing Supabase connection...")
    sb_logger.info(f"   🌐 URL: {url}")
    sb_logger.info(f"   🔑 Key: {key[:20]}...")

    try:
        client = create_client(url, key)
        sb_logger.info("✅ Supabase client created")
        return client
    except Exception as e:
        sb_logger.error(f"❌ Supabase connection failed: {e}")
        raise


def get_supabase() -> Client:
    """Return the shared service client, creating it on first use."""
    global _client
    if _client is None:
        _client = _create_supabase_client()
    return _client


def get_auth_client() -> Any:
    """
    Return a client for end-user auth calls (sign in, sign up, reset).

    A fresh client is built per call so a user's session never becomes the
    identity of the shared service client.
    """
    if _auth_client is not None:
        return _auth_client
    url, _ = supabase_get_credentials()
    return create_client(
        url,
        supabase_get_anon_key(),
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


def set_supabase(client: Optional[Any], auth_client: Optional[Any] = None) -> None:
    """Install a specific client (tests, scripts). Passing None resets to lazy creation."""
    global _client, _auth_client
    _client = client
    _auth_client = auth_client


# ===============================================================
# query helpers
# ===============================================================
def supabase_apply_filter(query, filters: dict | None):
    """
    Apply a filters dict to a query builder.

    Plain values are equality filters. Dict values select an operator:
    {"in": [...]}, {"neq": v}, {"gte": v}, {"lte": v}, {"ilike": pattern}.
    None values are skipped.
    """
    if not filters:
        return query
    for k, v in filters.items():
        if v is None:
            sb_logger.debug(f"supabase_apply_filter: skipping filter {k}=None")
            continue

        if isinstance(v, dict):
            if "in" in v:
                in_val = v.get("in")
                if not isinstance(in_val, (list, tuple)) or len(in_val) == 0:
                    sb_logger.debug(
                        f"supabase_apply_filter: skipping filter {k} IN {in_val!r}"
                    )
                else:
                    query = query.in_(k, list(in_val))
                continue

            applied = False
            for op in ("neq", "gte", "lte", "ilike"):
                if op in v and v[op] is not None:
                    query = getattr(query, op)(k, v[op])
                    applied = True
            if not applied:
                sb_logger.debug(
                    f"supabase_apply_filter: unrecognized filter object for key={k}: {v!r} (skipping)"
                )
            continue

        query = query.eq(k, v)
    return query


# ===============================================================
# getters (unified)
# ===============================================================
def supabase_get_row(table: str, filters: dict, columns: str = "*") -> dict | None:
    """Get a single row matching filters."""
    try:
        q = supabase_apply_filter(get_supabase().table(table).select(columns), filters)
        res = q.limit(1).execute()
        if getattr(res, "data", None):
            return res.data[0]
        return None
    except Exception as e:
        sb_logger.exception("supabase_get_row(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database fetch error ({table})")


def supabase_get_rows(
    table: str,
    filters: dict | None = None,
    columns: str = "*",
    order_by: Optional[str] = "created_at",
    desc: bool = True,
    limit: Optional[int] = None,
) -> list[dict]:
    """Get rows matching filters, ordered and optionally limited."""
    try:
        q = supabase_apply_filter(get_supabase().table(table).select(columns), filters)
        if order_by:
            q = q.order(order_by, desc=desc)
        if limit:
            q = q.limit(limit)
        res = q.execute()
        return list(getattr(res, "data", []) or [])
    except Exception as e:
        sb_logger.exception("supabase_get_rows(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database fetch error ({table})")


def supabase_count(table: str, filters: dict | None = None) -> int:
    """Count-only query; no rows are transferred."""
    try:
        q = supabase_apply_filter(
            get_supabase().table(table).select("id", count="exact", head=True), filters
        )
        res = q.execute()
        return int(getattr(res, "count", 0) or 0)
    except Exception as e:
        sb_logger.exception("supabase_count(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database fetch error ({table})")


# ===============================================================
# mutators
# ===============================================================
def supabase_insert(table: str, data: dict) -> dict:
    """Insert a row and return it as stored (backend-generated fields included)."""
    try:
        res = get_supabase().table(table).insert(data).execute()
    except Exception as e:
        sb_logger.exception("supabase_insert(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database write error ({table})")
    if not getattr(res, "data", None):
        sb_logger.error("supabase_insert(%s) returned no data", table)
        raise HTTPException(status_code=500, detail=f"Database write error ({table})")
    return res.data[0]


def supabase_update(table: str, filters: dict, data: dict) -> list[dict]:
    """Update rows matching filters. Refuses to run without filters."""
    if not filters:
        raise ValueError("supabase_update requires filters")
    try:
        q = supabase_apply_filter(get_supabase().table(table).update(data), filters)
        res = q.execute()
        return list(getattr(res, "data", []) or [])
    except Exception as e:
        sb_logger.exception("supabase_update(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database write error ({table})")


def supabase_upsert(table: str, data: dict, on_conflict: str) -> dict:
    try:
        res = get_supabase().table(table).upsert(data, on_conflict=on_conflict).execute()
    except Exception as e:
        sb_logger.exception("supabase_upsert(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database write error ({table})")
    rows = getattr(res, "data", None) or [data]
    return rows[0]


def supabase_delete(table: str, filters: dict) -> list[dict]:
    """Delete rows matching filters. Refuses to run without filters."""
    if not filters:
        raise ValueError("supabase_delete requires filters")
    try:
        q = supabase_apply_filter(get_supabase().table(table).delete(), filters)
        res = q.execute()
        return list(getattr(res, "data", []) or [])
    except Exception as e:
        sb_logger.exception("supabase_delete(%s) failed: %s", table, e)
        raise HTTPException(status_code=500, detail=f"Database write error ({table})")


# ===============================================================
# rpc, edge functions, storage
# ===============================================================
def supabase_rpc(name: str, params: dict) -> Any:
    try:
        res = get_supabase().rpc(name, params).execute()
        return getattr(res, "data", None)
    except Exception as e:
        sb_logger.exception("supabase_rpc(%s) failed: %s", name, e)
        raise HTTPException(status_code=500, detail=f"Database call error ({name})")


def supabase_invoke_function(name: str, body: dict) -> Any:
    """
    Invoke an edge function and return its JSON body.

    Errors propagate to the caller, which decides whether the call was critical.
    """
    sb_logger.info(f"⚡ Invoking edge function {name}")
    return get_supabase().functions.invoke(
        name, invoke_options={"body": body, "responseType": "json"}
    )


def supabase_upload_file(
    bucket: str, path: str, content: bytes, content_type: str
) -> str:
    """Upload bytes to a storage bucket and return the public URL."""
    try:
        storage = get_supabase().storage.from_(bucket)
        storage.upload(path, content, {"content-type": content_type, "upsert": "false"})
        url = storage.get_public_url(path)
    except Exception as e:
        sb_logger.exception("supabase_upload_file(%s/%s) failed: %s", bucket, path, e)
        raise HTTPException(status_code=500, detail="Upload failed. Please try again.")
    sb_logger.info(f"📤 Uploaded {path} to {bucket}")
    return url
