import contextvars
import logging
import time
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Request ID of the HTTP request being served, "-" outside of one
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.request_id = request_id_var.get("-")
        return True


def setup_logging(*, level: str = "INFO", to_file: bool = True, file_path: str = "logs/app.log", max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    # Drop handlers installed by uvicorn or basicConfig
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(log_level)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.addFilter(RequestIdFilter())
    root.addHandler(console)

    if to_file:
        try:
            path = Path(file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
            fh.setFormatter(formatter)
            fh.addFilter(RequestIdFilter())
            root.addHandler(fh)
        except OSError as e:
            logging.getLogger(__name__).warning("Failed to setup file logging: %s", e)

    # Request lines are logged by RequestIdMiddleware already
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(log_level)
    # SQL statements and frame dumps only at DEBUG
    for noisy in ("sqlalchemy.engine", "websockets"):
        logging.getLogger(noisy).setLevel(log_level if log_level <= logging.DEBUG else logging.WARNING)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Adds X-Request-ID to every HTTP response and logs request/response lines.

    WebSocket traffic does not pass through ``BaseHTTPMiddleware``; live sessions
    log their own connect/disconnect events.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("campus_monitor.request")

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(rid)
        try:
            self.logger.info("%s %s from %s", request.method, request.url.path, request.client.host if request.client else "-")
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Request-ID"] = rid
            self.logger.info("%s %s -> %s in %.1fms", request.method, request.url.path, response.status_code, duration_ms)
            return response
        except Exception:
            self.logger.exception("Unhandled error during request processing")
            raise
        finally:
            request_id_var.reset(token)
