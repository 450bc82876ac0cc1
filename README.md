# tubely

A small video-hosting backend built on the Python standard library. It has:

- `tubely.database` – SQLite storage for users, refresh tokens and video
  metadata;
- `tubely.media` – naming of uploaded assets on disk and helpers that inspect
  and remux videos with `ffprobe` and `ffmpeg`;
- `tubely.responses` – a `Response` value and JSON/error helpers;
- `tubely.server` – configuration from the environment, request routing,
  static file serving, and the `tubely` command.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

The `tubely` command first reads `KEY=VALUE` lines from `.env` in the current
directory (or from the file given with `--env-file PATH`), adding them to the
environment without overriding variables that are already set. Blank lines and
lines starting with `#` are skipped, an `export ` prefix is allowed, and values
may be wrapped in single or double quotes.

Every one of these settings must then be set and non-empty, or the command logs
which one is missing and exits with status 1:

| Variable        | Used for                                                 |
|-----------------|----------------------------------------------------------|
| `DB_PATH`       | path of the SQLite database file                         |
| `JWT_SECRET`    | required, but no route served here reads it              |
| `PLATFORM`      | `dev` enables `POST /admin/reset`                        |
| `FILEPATH_ROOT` | directory served under `/app/`                           |
| `ASSETS_ROOT`   | directory served under `/assets/`; created if missing    |
| `S3_BUCKET`     | required, but no route served here reads it              |
| `S3_REGION`     | required, but no route served here reads it              |
| `S3_CF_DISTRO`  | required, but no route served here reads it              |
| `PORT`          | port to listen on                                        |

For example:

```
export DB_PATH=tubely.db
export JWT_SECRET=secret
export PLATFORM=dev
export FILEPATH_ROOT=./app
export ASSETS_ROOT=./assets
export S3_BUCKET=placeholder
export S3_REGION=us-east-1
export S3_CF_DISTRO=placeholder
export PORT=8091
tubely
```

The server logs `Serving on: http://localhost:<PORT>/app/` and runs until
interrupted.

### Routes

| Request                        | Result                                                        |
|--------------------------------|---------------------------------------------------------------|
| `GET /app/...`                 | files from `FILEPATH_ROOT`                                    |
| `GET /assets/...`              | files from `ASSETS_ROOT`, sent with `Cache-Control: no-store` |
| `GET /api/videos/{videoID}`    | the video's metadata as JSON                                  |
| `POST /admin/reset`            | empties every table, only when `PLATFORM` is `dev`            |

Static files get a content type guessed from their name. A directory request
without a trailing slash is redirected to one with it; a directory serves its
`index.html` if present and otherwise an HTML listing. Paths cannot climb above
the served root. `/app` and `/assets` redirect to `/app/` and `/assets/`.

`GET /api/videos/{videoID}` answers 400 `{"error": "Invalid video ID"}` for an
ID that is not a UUID and 404 `{"error": "Couldn't get video"}` for an unknown
one. `POST /admin/reset` answers 403 with a plain-text message on any platform
other than `dev`. A route requested with the wrong method gets 405 with an
`Allow` header; `HEAD` is accepted wherever `GET` is. Anything else is 404.

### What the server does not do

The HTTP server has no routes for creating users, logging in, refreshing or
revoking tokens, creating, listing or deleting videos, or uploading thumbnails
and videos, and it does not check access tokens. It does not talk to any
object store: the `S3_*` settings are only required, never used. The storage
and media functions below cover those tasks, but they are not wired to HTTP.

## Using the pieces directly

### Database

```python
from tubely.database import Database

password = "password"
with Database("tubely.db") as db:
    user = db.create_user("alice@example.com", password)
    video = db.create_video("Intro", "First upload", user.id)
    video.thumbnail_url = "http://localhost:8091/assets/thumb.png"
    db.update_video(video)
    print([v.to_dict() for v in db.get_videos(user.id)])  # newest first
```

`Database` opens the file and creates its tables if needed. It offers
`create_user`, `get_user`, `get_user_by_email`, `get_user_by_refresh_token`,
`get_users` (id and email only), `delete_user`, `create_refresh_token`,
`get_refresh_token`, `revoke_refresh_token`, `delete_refresh_token`,
`create_video`, `get_video`, `get_videos`, `update_video`, `delete_video` and
`reset`. Lookups return `None` when nothing matches. `User`, `RefreshToken`
and `Video` are dataclasses with a `to_dict()` for JSON output; timestamps are
timezone-aware UTC `datetime` values.

### Media helpers

```python
from tubely.media import (
    AssetStore,
    aspect_ratio_to_prefix,
    classify_aspect_ratio,
    media_type_to_ext,
    new_asset_path,
)

media_type_to_ext("image/png")          # ".png"
media_type_to_ext("nonsense")           # ".bin"
classify_aspect_ratio(1920, 1080)       # "16:9"
classify_aspect_ratio(1080, 1920)       # "9:16"
aspect_ratio_to_prefix("9:16")          # "portrait"

store = AssetStore("assets", "8091")
store.ensure_dir()                      # creates "assets" if it is missing
name = new_asset_path("image/jpeg")     # random URL-safe name ending in ".jpeg"
store.disk_path(name)                   # Path("assets") / name
store.url(name)                         # http://localhost:8091/assets/<name>
```

`classify_aspect_ratio` raises `ValueError` for a non-positive width or height.
`get_video_aspect_ratio(path)` runs `ffprobe` and classifies the first stream
that has a size (`"other"` if none has). `process_video_for_fast_start(path)`
runs `ffmpeg` to move the index to the front of the file and returns the path
of the new file, `<path>.processing`. Both raise
`subprocess.CalledProcessError` if the tool fails; the tools must be on `PATH`.

### Responses

`tubely.responses.json_response(code, payload)` returns a `Response` with a
compact JSON body (objects with `to_dict()`, UUIDs and datetimes are
serialised); a payload that cannot be encoded gives an empty 500.
`error_response(code, message, error=None)` logs and returns
`{"error": message}`. `with_no_cache(response)` returns a copy with
`Cache-Control: no-store`.

`tubely.server.App(config, db).handle(method, path, body)` dispatches a single
request without a socket, and `make_server(app)` wraps an `App` in a threaded
`http.server` bound to the configured port.