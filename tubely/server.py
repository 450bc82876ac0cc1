"""The HTTP application: configuration, routing, static files and the server entry point."""

from __future__ import annotations

import argparse
import html
import logging
import mimetypes
import os
import posixpath
import re
import sqlite3
import sys
import uuid
from dataclasses import dataclass, fields
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Mapping, Optional
from urllib.parse import quote, unquote

from tubely.database import Database
from tubely.media import AssetStore
from tubely.responses import Response, error_response, json_response, with_no_cache

logger = logging.getLogger(__name__)

_TEXT = "text/plain; charset=utf-8"


class ConfigError(ValueError):
    """A required setting is missing from the environment."""


@dataclass(frozen=True)
class Config:
    """Settings read from the environment at start-up."""

    db_path: str
    jwt_secret: str
    platform: str
    filepath_root: str
    assets_root: str
    s3_bucket: str
    s3_region: str
    s3_cf_distribution: str
    port: str

    # Settings whose variable name is not simply the field name in upper case.
    _ENV_OVERRIDES = {"s3_cf_distribution": "S3_CF_DISTRO"}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a config from the environment; every setting is required."""
        environ = os.environ if environ is None else environ
        values = {}
        for item in fields(cls):
            name = cls._ENV_OVERRIDES.get(item.name, item.name.upper())
            value = environ.get(name, "")
            if not value:
                raise ConfigError(f"{name} environment variable is not set")
            values[item.name] = value
        return cls(**values)


def _plain(status: int, text: str) -> Response:
    return Response(status, {"Content-Type": _TEXT}, text.encode("utf-8"))


def _not_found() -> Response:
    return _plain(404, "404 page not found\n")


def _redirect(location: str) -> Response:
    return Response(301, {"Location": location})


def _file_response(path: Path) -> Response:
    data = path.read_bytes()
    content_type, _ = mimetypes.guess_type(path.name)
    if content_type is None:
        content_type = "application/octet-stream"
    elif content_type.startswith("text/"):
        content_type += "; charset=utf-8"
    return Response(
        200,
        {"Content-Type": content_type, "Content-Length": str(len(data))},
        data,
    )


def _listing(directory: Path) -> Response:
    entries = sorted(
        entry.name + ("/" if entry.is_dir() else "") for entry in directory.iterdir()
    )
    lines = [
        "<!doctype html>",
        '<meta name="viewport" content="width=device-width">',
        "<pre>",
        *(f'<a href="{quote(name)}">{html.escape(name)}</a>' for name in entries),
        "</pre>",
    ]
    return Response(
        200,
        {"Content-Type": "text/html; charset=utf-8"},
        ("\n".join(lines) + "\n").encode("utf-8"),
    )


class App:
    """Routes requests to handlers backed by the database and asset store."""

    def __init__(self, config: Config, db: Database) -> None:
        self.config = config
        self.db = db
        self.assets = AssetStore(config.assets_root, config.port)
        self._routes: list[tuple[str, re.Pattern, Callable[..., Response]]] = [
            ("POST", re.compile(r"/admin/reset"), self.reset),
            ("GET", re.compile(r"/api/videos/([^/]+)"), self.get_video),
        ]

    def handle(self, method: str, path: str, body: bytes = b"") -> Response:
        """Dispatch one request and return its response."""
        path = path.split("?", 1)[0] or "/"
        method = method.upper()

        if path == "/app":
            return _redirect("/app/")
        if path.startswith("/app/"):
            return self.serve_static(self.config.filepath_root, path[len("/app"):])
        if path == "/assets":
            return _redirect("/assets/")
        if path.startswith("/assets/"):
            return self.serve_static(
                self.config.assets_root, path[len("/assets"):], no_cache=True
            )

        allowed = []
        for route_method, pattern, handler in self._routes:
            match = pattern.fullmatch(path)
            if match is None:
                continue
            if method == route_method or (route_method == "GET" and method == "HEAD"):
                return handler(*(unquote(group) for group in match.groups()))
            allowed.append(route_method)
        if allowed:
            response = _plain(405, "Method Not Allowed\n")
            response.headers["Allow"] = ", ".join(allowed)
            return response
        return _not_found()

    def reset(self) -> Response:
        """Empty the database; only allowed on the dev platform."""
        if self.config.platform != "dev":
            return _plain(403, "Reset is only allowed in dev environment.")
        try:
            self.db.reset()
        except sqlite3.Error as exc:
            return error_response(500, "Couldn't reset database", exc)
        return _plain(200, "Database reset to initial state")

    def get_video(self, video_id: str) -> Response:
        """Return one video's metadata as JSON."""
        try:
            parsed = uuid.UUID(video_id)
        except ValueError as exc:
            return error_response(400, "Invalid video ID", exc)
        try:
            video = self.db.get_video(parsed)
        except sqlite3.Error as exc:
            return error_response(404, "Couldn't get video", exc)
        if video is None:
            return error_response(404, "Couldn't get video")
        return json_response(200, video)

    def serve_static(self, root, relative_path: str, no_cache: bool = False) -> Response:
        """Serve a file or directory below root; paths cannot climb out of it."""
        response = self._static(Path(root), relative_path)
        return with_no_cache(response) if no_cache else response

    @staticmethod
    def _static(root: Path, relative_path: str) -> Response:
        requested = unquote(relative_path)
        if not requested.startswith("/"):
            requested = "/" + requested
        cleaned = posixpath.normpath(requested)
        parts = [part for part in cleaned.split("/") if part and part != ".."]
        target = root.joinpath(*parts)
        try:
            if target.is_dir():
                if not requested.endswith("/"):
                    return _redirect(posixpath.basename(cleaned) + "/")
                index = target / "index.html"
                if index.is_file():
                    return _file_response(index)
                return _listing(target)
            if target.is_file():
                return _file_response(target)
        except (OSError, ValueError):
            pass
        return _not_found()


def make_server(app: App) -> ThreadingHTTPServer:
    """Create a threaded HTTP server bound to the configured port."""

    class _Handler(BaseHTTPRequestHandler):
        def _dispatch(self) -> None:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                length = 0
            body = self.rfile.read(length) if length > 0 else b""
            response = app.handle(self.command, self.path, body)
            self.send_response(response.status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            if "Content-Length" not in response.headers:
                self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if self.command != "HEAD" and response.body:
                self.wfile.write(response.body)

        do_GET = do_HEAD = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _dispatch

    return ThreadingHTTPServer(("", int(app.config.port)), _Handler)


def _load_env_file(path) -> None:
    """Add KEY=VALUE lines from the file to the environment without overriding."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        os.environ.setdefault(key.strip(), value)


def main(argv=None) -> int:
    """Run the server until interrupted; returns the exit status."""
    parser = argparse.ArgumentParser(prog="tubely", description="Serve the video API.")
    parser.add_argument("--env-file", default=".env", help="file of KEY=VALUE settings")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    _load_env_file(args.env_file)
    try:
        config = Config.from_env(os.environ)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    try:
        db = Database(config.db_path)
    except sqlite3.Error as exc:
        logger.error("Couldn't connect to database: %s", exc)
        return 1

    with db:
        app = App(config, db)
        try:
            app.assets.ensure_dir()
        except OSError as exc:
            logger.error("Couldn't create assets directory: %s", exc)
            return 1
        try:
            server = make_server(app)
        except OSError as exc:
            logger.error("%s", exc)
            return 1
        logger.info("Serving on: http://localhost:%s/app/", config.port)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()
    return 0


if __name__ == "__main__":
    sys.exit(main())