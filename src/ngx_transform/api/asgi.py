"""ASGI entrypoint for the NGX Transform API."""

from functools import lru_cache

from ngx_transform.api.app import create_app
from ngx_transform.containers import AppContainer, build_container


@lru_cache(maxsize=1)
def get_container() -> AppContainer:
    """Build the process-wide client registry on first use."""
    return build_container()


app = create_app(get_container())
