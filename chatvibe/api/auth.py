from fastapi import Header, HTTPException
from chatvibe.settings import settings
from chatvibe.core.runtime import ClientRuntime, get_runtime


def require_api_key(x_api_key: str = Header(default="", alias="x-api-key")):
    """
    API key is optional.
    - If API_KEY env is empty: allow all requests.
    - If API_KEY env is set: require matching x-api-key header.
    """
    if not getattr(settings, "API_KEY", ""):
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


async def client_runtime(x_install_id: str = Header(default="default", alias="x-install-id")) -> ClientRuntime:
    """Each installed device gets its own runtime (session, jobs, cookies).

    Async so creation and eviction happen on the event loop that owns the
    runtimes' HTTP clients.
    """
    return get_runtime((x_install_id or "").strip() or "default")
