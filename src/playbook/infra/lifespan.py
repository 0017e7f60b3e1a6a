"""Lifespan wiring.

``inject`` lets the FastAPI lifespan declare ``Depends()`` parameters
the same way a route handler does; each dependency builds one shared
resource and stores it on ``app.state``.  ``app_state`` is the
per-request side: it reads such a resource back and fails with a clear
message when the lifespan never ran (a bare ``TestClient(app)``
without overrides, for example).

Based on https://github.com/fastapi/fastapi/discussions/11742
"""

from collections.abc import Callable
from contextlib import AsyncExitStack, asynccontextmanager
from functools import partial
from typing import Any

from fastapi import FastAPI, Request
from fastapi.dependencies.utils import get_dependant, solve_dependencies


class LifespanStateMissing(RuntimeError):
    """Raised when a request needs a resource the lifespan did not set up."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"app.state.{name} is not set; was the application lifespan started?"
        )
        self.name = name


def get_app(request: Request) -> FastAPI:
    """Lifespan dependency that returns the ``FastAPI`` application."""
    return request.app


def app_state(name: str) -> Callable[[Request], Any]:
    """Per-request dependency returning ``request.app.state.<name>``."""

    def read(request: Request) -> Any:
        try:
            return getattr(request.app.state, name)
        except AttributeError:
            raise LifespanStateMissing(name) from None

    read.__name__ = f"get_{name}"
    return read


def _lifespan_request(app: FastAPI) -> Request:
    """Synthetic request the dependency solver runs the lifespan under."""
    return Request(
        scope={
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/",
            "raw_path": b"/",
            "query_string": b"",
            "root_path": "",
            "headers": ((b"x-request-scope", b"lifespan"),),
            "client": ("localhost", 80),
            "server": ("localhost", 80),
            "state": app.state,
            "app": app,
        }
    )


def inject(lifespan: Callable[..., Any]) -> Callable[[FastAPI], Any]:
    """Resolve ``Depends()`` parameters for a lifespan function.

    Usage::

        @inject
        async def lifespan(
            app: FastAPI,
            _db: Annotated[None, Depends(build_db)],
        ):
            yield

    Dependencies set up in resolution order and are torn down in reverse
    on shutdown.  ``app.dependency_overrides`` is honoured, so tests can
    replace any of them.
    """

    @asynccontextmanager
    async def wrapper(app: FastAPI):  # type: ignore[misc]
        dependant = get_dependant(path="/", call=partial(lifespan, app))
        async with AsyncExitStack() as stack:
            solved = await solve_dependencies(
                request=_lifespan_request(app),
                dependant=dependant,
                async_exit_stack=stack,
                embed_body_fields=False,
                dependency_overrides_provider=app,
            )
            async with asynccontextmanager(lifespan)(app, **solved.values):
                yield

    return wrapper
