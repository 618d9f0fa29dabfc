"""HTTP interface to the Bloch sphere playground.

Each client creates a session and then drives it with the same commands the
interactive view offers: apply a gate, reset to a basis state, undo, and check
a challenge.  Every mutating response carries the fresh readout so a client
can redraw without a second request.

Gate names arriving over HTTP are untrusted, so ``/gate`` rejects anything
outside ``X, Y, Z, H, S, T`` with a 400 instead of recording a no-op step.

Run it with any ASGI server, e.g. ``uvicorn blochlab.api:app``.
"""

import inspect
import json
import logging
from typing import Any, Callable, Dict, Literal, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel

from .bloch_sim import GATES, InvalidGateError, describe_gate, gate_from_name
from .challenges import CHALLENGES, UnknownChallengeError
from .config import Settings
from .logging_config import setup_logging
from .session import Session, SessionStore, UnknownSessionError

logger = logging.getLogger(__name__)

router = APIRouter()

# actions registry, shared by /actions and /perform
ACTIONS: Dict[str, Dict[str, Any]] = {}


def register_action(name: str, kind: str = "command"):
    """Decorator to register a session action with its type."""

    def decorator(fn: Callable[..., Dict[str, Any]]):
        ACTIONS[name] = {"fn": fn, "type": kind}
        return fn

    return decorator


class GateRequest(BaseModel):
    name: str


class ResetRequest(BaseModel):
    basis: Literal[0, 1]


class PerformRequest(BaseModel):
    intent: str
    params: Optional[Dict[str, Any]] = None


def _store(request: Request) -> SessionStore:
    return request.app.state.sessions


def _session(request: Request, session_id: str) -> Session:
    return _store(request).get(session_id)


@register_action("apply_gate")
def apply_gate_action(session: Session, name: str) -> Dict[str, Any]:
    gate_from_name(name)
    session.apply_gate(name)
    return {"gate": name, "state": session.engine.readout()}


@register_action("reset")
def reset_action(session: Session, basis: int = 0) -> Dict[str, Any]:
    if basis not in (0, 1):
        return {"error": "basis must be 0 or 1"}
    session.reset_to(basis)
    return {"basis": basis, "state": session.engine.readout()}


@register_action("undo")
def undo_action(session: Session) -> Dict[str, Any]:
    undone = session.undo()
    return {"undone": undone, "state": session.engine.readout()}


@register_action("check", kind="query")
def check_action(session: Session, challenge_id: str) -> Dict[str, Any]:
    result = session.check_challenge(challenge_id)
    body = result.to_dict()
    body["completed"] = session.completed_in_order()
    return body


@register_action("readout", kind="query")
def readout_action(session: Session) -> Dict[str, Any]:
    return session.snapshot()


@router.get("/", response_class=HTMLResponse)
def root():
    return """
    <html>
      <head><title>Bloch Lab</title></head>
      <body style="font-family: sans-serif;">
        <h1>Bloch Lab is online</h1>
        <p>POST to <code>/sessions</code> to start, or browse <a href="/docs">/docs</a>.</p>
      </body>
    </html>
    """


@router.get("/gates")
def gates():
    return {name: describe_gate(name) for name in GATES}


@router.get("/challenges")
def challenges():
    return [c.to_dict() for c in CHALLENGES]


@router.post("/sessions")
def create_session(request: Request):
    session = _store(request).create()
    return session.snapshot()


@router.get("/sessions/{session_id}")
def get_session(request: Request, session_id: str):
    return _session(request, session_id).snapshot()


@router.delete("/sessions/{session_id}")
def delete_session(request: Request, session_id: str):
    _store(request).delete(session_id)
    return {"deleted": session_id}


@router.post("/sessions/{session_id}/gate")
def apply_gate(request: Request, session_id: str, req: GateRequest):
    return apply_gate_action(_session(request, session_id), req.name)


@router.post("/sessions/{session_id}/reset")
def reset(request: Request, session_id: str, req: ResetRequest):
    return reset_action(_session(request, session_id), req.basis)


@router.post("/sessions/{session_id}/undo")
def undo(request: Request, session_id: str):
    return undo_action(_session(request, session_id))


@router.post("/sessions/{session_id}/challenges/{challenge_id}/check")
def check(request: Request, session_id: str, challenge_id: str):
    return check_action(_session(request, session_id), challenge_id)


@router.get("/sessions/{session_id}/log")
def session_log(request: Request, session_id: str):
    return list(_session(request, session_id).log)


@router.get("/actions")
def list_actions():
    """Return all registered action names and their types."""
    return {name: info["type"] for name, info in ACTIONS.items()}


@router.post("/sessions/{session_id}/perform")
def perform(request: Request, session_id: str, req: PerformRequest):
    session = _session(request, session_id)
    info = ACTIONS.get(req.intent)
    if not info:
        return {"error": "unknown action"}
    params = req.params or {}
    fn = info["fn"]
    try:
        inspect.signature(fn).bind(session, **params)
    except TypeError as exc:
        logger.debug("Bad parameters for %s: %s", req.intent, exc)
        return {"error": f"bad parameters for {req.intent}: {exc}"}
    return fn(session, **params)


@router.get("/openapi.yaml", include_in_schema=False)
def serve_openapi(request: Request):
    """Serve the OpenAPI specification rendered as YAML."""
    return Response(openapi_yaml(request.app), media_type="text/yaml")


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build an app with its own, empty session store."""
    settings = settings or Settings.from_env()
    app = FastAPI(
        title="Bloch Lab API",
        version="1.0",
        description="Drive a single qubit around the Bloch sphere and check guided challenges.",
    )
    setup_logging(settings.log_level_value, settings.log_file)
    app.state.settings = settings
    app.state.sessions = SessionStore(settings)
    app.include_router(router)

    @app.exception_handler(InvalidGateError)
    async def _invalid_gate(request: Request, exc: InvalidGateError):
        return _error(400, exc)

    @app.exception_handler(UnknownSessionError)
    async def _unknown_session(request: Request, exc: UnknownSessionError):
        return _error(404, exc)

    @app.exception_handler(UnknownChallengeError)
    async def _unknown_challenge(request: Request, exc: UnknownChallengeError):
        return _error(404, exc)

    return app


def _to_yaml(obj: Any, indent: int = 0) -> str:
    """Render plain dicts, lists and scalars as block-style YAML."""
    pad = "  " * indent
    if isinstance(obj, dict):
        if not obj:
            return f"{pad}{{}}"
        lines = []
        for key, value in obj.items():
            if isinstance(value, (dict, list)) and value:
                lines.append(f"{pad}{json.dumps(str(key))}:")
                lines.append(_to_yaml(value, indent + 1))
            else:
                lines.append(f"{pad}{json.dumps(str(key))}: {_yaml_scalar(value)}")
        return "\n".join(lines)
    if isinstance(obj, list):
        if not obj:
            return f"{pad}[]"
        lines = []
        for item in obj:
            if isinstance(item, (dict, list)) and item:
                lines.append(f"{pad}-")
                lines.append(_to_yaml(item, indent + 1))
            else:
                lines.append(f"{pad}- {_yaml_scalar(item)}")
        return "\n".join(lines)
    return f"{pad}{_yaml_scalar(obj)}"


def _yaml_scalar(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return "{}" if isinstance(value, dict) else "[]"
    # JSON scalars are valid YAML flow scalars
    return json.dumps(value)


def openapi_yaml(app: FastAPI) -> str:
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    return _to_yaml(schema) + "\n"


def generate_openapi_yaml(path: str = "openapi.yaml", app: Optional[FastAPI] = None) -> None:
    """Write the OpenAPI spec in YAML format to *path*."""
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(openapi_yaml(app or create_app()))


app = create_app()
