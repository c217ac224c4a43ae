import logging

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from gitproxy import github_service
from gitproxy.chunking import validate_line_window
from gitproxy.config import Settings, TokenProvider, settings
from gitproxy.content import normalize_repo_path
from gitproxy.deps import build_provider, get_http_client, get_settings, get_token_provider
from gitproxy.errors import GitProxyError, InvalidInputError
from gitproxy.github_service import diff_prefix

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="GitHub Repository Proxy")

TEXT = "text/plain; charset=utf-8"


@app.exception_handler(GitProxyError)
async def proxy_error_handler(request: Request, exc: GitProxyError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"kind": exc.kind, "message": exc.message}},
        headers={"X-Error-Kind": exc.kind},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return await proxy_error_handler(request, InvalidInputError(f"Invalid request: {details}"))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        # sent from outside the CORS and no_store middleware
        headers={"Access-Control-Allow-Origin": "*", "Cache-Control": "no-store"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["*"],
)


@app.middleware("http")
async def no_store(request: Request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store"
    return response


def require(**params):
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise InvalidInputError(f"Missing {'/'.join(missing)}")


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/api/explore")
async def explore(
    request: Request,
    owner: str = "",
    repo: str = "",
    ref: str | None = None,
    conf: Settings = Depends(get_settings),
    tokens: TokenProvider = Depends(get_token_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    require(owner=owner, repo=repo)
    provider = build_provider(owner, tokens, client, conf)
    result = await github_service.explore(provider, owner, repo, ref, str(request.base_url))
    return PlainTextResponse(result.body, headers=result.headers, media_type=TEXT)


@app.get("/api/get-file")
async def get_file(
    owner: str = "",
    repo: str = "",
    path: str = "",
    ref: str | None = None,
    start: int = 1,
    end: int = 0,
    line_numbers: bool = Query(False, alias="lineNumbers"),
    markdown_fence: bool = Query(False, alias="markdownFence"),
    conf: Settings = Depends(get_settings),
    tokens: TokenProvider = Depends(get_token_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    require(owner=owner, repo=repo, path=path)
    path = normalize_repo_path(path, required=True)
    validate_line_window(start, end)
    provider = build_provider(owner, tokens, client, conf)
    result = await github_service.get_file_chunk(
        provider, owner, repo, ref, path,
        start=start,
        end=end,
        line_numbers=line_numbers,
        markdown_fence=markdown_fence,
    )
    return PlainTextResponse(result.body, headers=result.headers, media_type=TEXT)


@app.get("/api/bundle")
async def bundle(
    owner: str = "",
    repo: str = "",
    ref: str | None = None,
    dir: str = "",
    cursor: int = 0,
    chunk_files: int | None = Query(None, alias="chunkFiles"),
    conf: Settings = Depends(get_settings),
    tokens: TokenProvider = Depends(get_token_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    require(owner=owner, repo=repo)
    dir = normalize_repo_path(dir)
    provider = build_provider(owner, tokens, client, conf)
    result = await github_service.bundle(
        provider, owner, repo, ref,
        directory=dir,
        cursor=cursor,
        chunk_size=conf.DEFAULT_CHUNK_FILES if chunk_files is None else chunk_files,
        concurrency=conf.BUNDLE_CONCURRENCY,
    )
    return PlainTextResponse(result.body, headers=result.headers, media_type=TEXT)


@app.get("/api/diff")
async def diff(
    owner: str = "",
    repo: str = "",
    base: str = "",
    head: str = "",
    path: str = "",
    conf: Settings = Depends(get_settings),
    tokens: TokenProvider = Depends(get_token_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    require(owner=owner, repo=repo, base=base, head=head)
    path = diff_prefix(path)
    provider = build_provider(owner, tokens, client, conf)
    result = await github_service.diff(
        provider, owner, repo, base, head, path,
        patch_max_chars=conf.PATCH_MAX_CHARS,
        max_commits=conf.DIFF_MAX_COMMITS,
    )
    return JSONResponse(
        result.to_wire(),
        headers={
            "X-Base-Commit-Sha": result.base_commit_sha,
            "X-Head-Commit-Sha": result.head_commit_sha,
        },
    )


@app.get("/api/meta")
async def meta(
    owner: str = "",
    repo: str = "",
    ref: str | None = None,
    dir: str = "",
    conf: Settings = Depends(get_settings),
    tokens: TokenProvider = Depends(get_token_provider),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    require(owner=owner, repo=repo)
    dir = normalize_repo_path(dir)
    provider = build_provider(owner, tokens, client, conf)
    result = await github_service.tree_meta(provider, owner, repo, ref, directory=dir)
    return JSONResponse(result.to_wire(), headers={"X-Commit-Sha": result.commit_sha})
